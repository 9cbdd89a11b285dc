"""HTTP client for the collaborator service.

The service handles everything the job board cannot do locally: emailing
login OTPs, checking degree certificates and notifying job posters about
new applications.  The store never calls it; the surrounding application
decides when to, and only then calls into the store.

Endpoints (relative to ``api_base_url``)
----------------------------------------
POST /send-otp                    {email}                -> {success}
POST /verify-otp                  {email, otp}           -> {success}
POST /verify_degree_certificate   multipart form + file  -> {status}
POST /send-application-mail       {to, alumni, job}      (fire-and-forget)

Failure handling
----------------
No method raises for network problems.  Timeouts, connection errors, HTTP
errors and malformed JSON are logged at WARNING and reported as a negative
result (``False`` or ``"error"``).  POST requests are not repeated after a
gateway error, so an OTP or notification mail is sent at most once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Sequence

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

if TYPE_CHECKING:
    from jobboard.config import Settings
    from jobboard.models import Job

logger = logging.getLogger(__name__)

# Retry configuration: connection failures for any method, gateway errors for GET only
_RETRY_TOTAL = 2
_RETRY_BACKOFF = 0.5
_RETRY_ON_STATUS = (502, 503, 504)

ERROR_STATUS = "error"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass
class BackendConfig:
    """Configuration bundle for :class:`BackendClient`."""

    base_url: str = "http://localhost:5000/api"
    timeout: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "BackendConfig":
        return cls(base_url=settings.api_base_url, timeout=settings.api_timeout)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class BackendClient:
    """Thin wrapper over the collaborator service's JSON endpoints.

    Parameters
    ----------
    config:
        :class:`BackendConfig` with the base URL and timeout.
    session:
        Optional ``requests.Session``.  A new session with retry logic is
        created when *None*.  Pass a mock session in tests to avoid real
        network calls.
    """

    def __init__(
        self,
        config: BackendConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._config = config or BackendConfig()
        self._session = session or _make_session()

    def url(self, path: str) -> str:
        return f"{self._config.base_url.rstrip('/')}/{path.lstrip('/')}"

    # ------------------------------------------------------------------
    # OTP login
    # ------------------------------------------------------------------

    def send_otp(self, email: str) -> bool:
        """Ask the service to email a one-time password to *email*."""
        data = self._post_json("send-otp", {"email": email})
        return _succeeded(data)

    def verify_otp(self, email: str, otp: str) -> bool:
        """Return *True* when *otp* is the code last sent to *email*."""
        data = self._post_json("verify-otp", {"email": email, "otp": otp})
        return _succeeded(data)

    # ------------------------------------------------------------------
    # Degree verification
    # ------------------------------------------------------------------

    def verify_degree_certificate(
        self,
        name: str,
        university_seat_number: str,
        skills: Sequence[str],
        experience: int,
        degree_file: Path | str,
    ) -> str:
        """Upload a degree certificate for verification.

        Returns the ``status`` string reported by the service, or
        ``"error"`` if the request failed or the file could not be read.
        """
        path = Path(degree_file)
        form = {
            "name": name,
            "university_seat_number": university_seat_number,
            "skills": ",".join(skills),
            "experience": str(experience),
        }
        try:
            with path.open("rb") as fh:
                data = self._post(
                    "verify_degree_certificate",
                    data=form,
                    files={"degree_file": (path.name, fh)},
                )
        except OSError as exc:
            logger.warning("Could not read degree file %s: %s", path, exc)
            return ERROR_STATUS
        if not isinstance(data, dict):
            return ERROR_STATUS
        return str(data.get("status") or ERROR_STATUS)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def send_application_mail(
        self, to: str, alumni: dict[str, Any], job: Job
    ) -> bool:
        """Notify the poster of *job* that *alumni* applied.

        Fire-and-forget: the result only says whether the service accepted
        the request.
        """
        payload = {
            "to": to,
            "alumni": alumni,
            "job": {
                "id": job.id,
                "role": job.title,
                "company": job.company,
                "referralCode": job.effective_referral_code,
                "description": job.description,
                "skillsets": list(job.skills),
                "experience": job.experience,
                "datePosted": job.posted_at.isoformat(),
                "userName": job.posted_by,
            },
        }
        return self._post_json("send-application-mail", payload) is not None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _post_json(self, path: str, payload: dict) -> Optional[Any]:
        return self._post(path, json=payload)

    def _post(self, path: str, **kwargs) -> Optional[Any]:
        """POST to *path* and return the decoded JSON body, or ``None`` on failure.

        A 2xx response with an empty body decodes to ``{}``.
        """
        url = self.url(path)
        try:
            resp = self._session.post(url, timeout=self._config.timeout, **kwargs)
            resp.raise_for_status()
        except requests.exceptions.Timeout:
            logger.warning("Backend request timed out: %s", url)
            return None
        except requests.exceptions.HTTPError as exc:
            logger.warning(
                "Backend HTTP error %s for %s",
                getattr(exc.response, "status_code", "?"),
                url,
            )
            return None
        except requests.exceptions.RequestException as exc:
            logger.warning("Backend request failed for %s: %s", url, exc)
            return None

        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError:
            logger.warning("Backend returned non-JSON body for %s", url)
            return None


def _succeeded(data: Optional[Any]) -> bool:
    return isinstance(data, dict) and data.get("success") is True


# ---------------------------------------------------------------------------
# Session factory
# ---------------------------------------------------------------------------


def _make_session() -> requests.Session:
    """Return a requests.Session with retry logic and JSON accept headers."""
    session = requests.Session()
    retry = Retry(
        total=_RETRY_TOTAL,
        backoff_factor=_RETRY_BACKOFF,
        status_forcelist=_RETRY_ON_STATUS,
        allowed_methods=["GET"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update({"Accept": "application/json"})
    return session
