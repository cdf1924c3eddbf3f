import base64
import hashlib
import hmac
import logging
import re
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Optional
from urllib.parse import quote

import requests
from django.conf import settings
from django.urls import reverse
from django.utils import timezone
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .. import exceptions
from ..models import NdaAgreement

logger = logging.getLogger(__name__)

Status = NdaAgreement.Status

# Sadiq reports free-form strings ("In-progress", "Completed", ...). Keys are
# lower-cased with spaces and dashes folded to underscores.
PROVIDER_STATUS_MAP = {
    "draft": Status.INVITATION_SENT,
    "sent": Status.INVITATION_SENT,
    "pending": Status.INVITATION_SENT,
    "in_progress": Status.INVITATION_SENT,
    "inprogress": Status.INVITATION_SENT,
    "partially_signed": Status.INVITATION_SENT,
    "completed": Status.SIGNED,
    "complete": Status.SIGNED,
    "signed": Status.SIGNED,
    "all_signed": Status.SIGNED,
    "expired": Status.EXPIRED,
    "rejected": Status.CANCELLED,
    "declined": Status.CANCELLED,
    "voided": Status.CANCELLED,
    "cancelled": Status.CANCELLED,
    "canceled": Status.CANCELLED,
}

# Words in a provider rejection that mean the user has to fix their data
_DATA_PROBLEM_FIELDS = (
    ("phone", "phone"),
    ("mobile", "phone"),
    ("email", "email"),
    ("nationalid", "national_id"),
    ("national id", "national_id"),
    ("national_id", "national_id"),
)


def map_provider_status(raw_status: Optional[str], completion_percentage: Optional[int] = None):
    """Translate a provider status into the local enum, or None when unknown."""
    key = re.sub(r"[\s\-]+", "_", (raw_status or "").strip().lower())
    local = PROVIDER_STATUS_MAP.get(key)
    if local is None and completion_percentage is not None and completion_percentage >= 100:
        return Status.SIGNED
    return local


@dataclass(frozen=True)
class EnvelopeRef:
    envelope_id: str
    reference_number: str
    document_id: str


@dataclass(frozen=True)
class EnvelopeStatus:
    status: str
    completion_percentage: Optional[int] = None

    @property
    def local_status(self):
        return map_provider_status(self.status, self.completion_percentage)


def build_session(retries: int = 3) -> requests.Session:
    """Session that retries idempotent calls on provider hiccups."""
    session = requests.Session()
    retry = Retry(
        total=retries,
        backoff_factor=0.5,
        status_forcelist=[502, 503, 504],
        allowed_methods=["GET"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


class SadiqService:
    def __init__(self, session: Optional[requests.Session] = None) -> None:
        self.base_url = getattr(settings, "SADIQ_BASE_URL", "").rstrip("/")
        self.token_url = getattr(settings, "SADIQ_TOKEN_URL", "")
        self.account_id = getattr(settings, "SADIQ_ACCOUNT_ID", "")
        self.account_secret = getattr(settings, "SADIQ_ACCOUNT_SECRET", "")
        self.username = getattr(settings, "SADIQ_USERNAME", "")
        self.password = getattr(settings, "SADIQ_PASSWORD", "")
        self.webhook_secret = getattr(settings, "SADIQ_WEBHOOK_SECRET", "")
        self.signing_base_url = getattr(settings, "SADIQ_SIGNING_BASE_URL", "").rstrip("/")
        self.timeout = getattr(settings, "SADIQ_TIMEOUT", 20)
        self.invitation_valid_days = getattr(settings, "SADIQ_INVITATION_VALID_DAYS", 30)
        self._access_token = getattr(settings, "SADIQ_ACCESS_TOKEN", "") or None
        self.session = session or build_session()

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url)

    def _get_access_token(self) -> str:
        if self._access_token:
            return self._access_token
        if not (self.token_url and self.username and self.password):
            raise exceptions.ProviderRejected("Sadiq credentials are not configured")

        form = {
            "grant_type": "integration",
            "accountId": self.account_id,
            "accountSecret": self.account_secret,
            "username": self.username,
            "password": self.password,
        }
        try:
            resp = self.session.post(self.token_url, data=form, headers={"Accept": "application/json"}, timeout=self.timeout)
        except requests.RequestException as e:
            raise exceptions.ProviderUnavailable(f"Sadiq authentication unreachable: {e}")
        if resp.status_code >= 500:
            raise exceptions.ProviderUnavailable(f"Sadiq authentication error: {resp.status_code}")
        if resp.status_code != 200:
            raise exceptions.ProviderRejected(f"Sadiq authentication failed: {resp.status_code}")
        try:
            data = resp.json()
        except ValueError:
            raise exceptions.ProviderRejected("Sadiq authentication returned invalid JSON")
        if data.get("error") or not data.get("access_token"):
            raise exceptions.ProviderRejected(f"Sadiq authentication failed: {data.get('errorMessage') or data.get('error') or 'no token'}")
        self._access_token = data["access_token"]
        logger.info("Obtained Sadiq access token (expires in %s s)", data.get("expires_in"))
        return self._access_token

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        headers = {
            "Authorization": f"Bearer {self._get_access_token()}",
            "Accept": "application/json",
        }
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise exceptions.ProviderUnavailable(f"Sadiq unreachable: {e}")
        if resp.status_code >= 500:
            raise exceptions.ProviderUnavailable(f"Sadiq API error: {resp.status_code}")
        return resp

    @staticmethod
    def _unwrap(resp: requests.Response) -> Dict:
        """Return the payload, unwrapping Sadiq's {errorCode, message, data} envelope."""
        try:
            body = resp.json()
        except ValueError:
            raise exceptions.ProviderRejected(f"Sadiq returned invalid JSON ({resp.status_code})")
        if not isinstance(body, dict):
            raise exceptions.ProviderRejected("Sadiq returned an unexpected payload")
        error_code = body.get("errorCode")
        if error_code not in (None, 0):
            raise _classify_rejection(body.get("message") or f"Sadiq error code: {error_code}")
        data = body.get("data")
        return data if isinstance(data, dict) else body

    def build_envelope_payload(self, agreement: NdaAgreement, document: bytes, file_name: str, reference_number: str) -> Dict:
        company = agreement.company_signature_info
        entrepreneur = agreement.entrepreneur_info
        project_title = agreement.project.title
        available_to = timezone.now() + timedelta(days=self.invitation_valid_days)
        return {
            "referenceNumber": reference_number,
            "document": {
                "fileName": file_name,
                "content": base64.b64encode(document).decode(),
            },
            "signers": [
                {
                    "role": "entrepreneur",
                    "name": entrepreneur.get("full_name", ""),
                    "email": entrepreneur.get("email", ""),
                    "phone": entrepreneur.get("phone", ""),
                    "nationalId": entrepreneur.get("national_id", ""),
                    "signOrder": 0,
                },
                {
                    "role": "company",
                    "name": company.get("name", ""),
                    "email": company.get("email", ""),
                    "phone": company.get("phone", ""),
                    "nationalId": company.get("national_id", ""),
                    "signOrder": 1,
                },
            ],
            "invitation": {
                "subject": f"توقيع اتفاقية عدم الإفصاح - مشروع {project_title}",
                "message": f"نرجو منكم توقيع اتفاقية عدم الإفصاح المرفقة للمشروع: {project_title}.",
                "language": "ar",
                "availableTo": available_to.isoformat(),
            },
            "webhookUrl": f"{getattr(settings, 'SITE_URL', '').rstrip('/')}{reverse('nda:webhook')}",
        }

    def create_envelope(self, agreement: NdaAgreement, document: bytes, file_name: Optional[str] = None) -> EnvelopeRef:
        file_name = file_name or f"nda-{agreement.pk}.pdf"
        if not self.is_configured:
            # Dev fallback: pretend we created an envelope
            digest = hashlib.sha256(
                f"{agreement.pk}:{agreement.company_signature_info.get('email', '')}:{agreement.entrepreneur_info.get('email', '')}".encode()
            ).hexdigest()[:12]
            logger.warning("SADIQ_BASE_URL not set; returning dev envelope for agreement %s", agreement.pk)
            return EnvelopeRef(f"dev-envelope-{digest}", f"dev-ref-{digest}", f"dev-document-{digest}")

        reference_number = f"nda-{agreement.pk}-{uuid.uuid4().hex[:8]}"
        payload = self.build_envelope_payload(agreement, document, file_name, reference_number)
        logger.info("Creating Sadiq envelope for agreement %s (ref %s)", agreement.pk, reference_number)
        resp = self._request("POST", "/envelopes", json=payload)
        if resp.status_code not in (200, 201):
            raise _classify_rejection(_error_text(resp), status_code=resp.status_code)
        data = self._unwrap(resp)

        envelope_id = data.get("envelopeId") or data.get("id")
        if not envelope_id:
            raise exceptions.ProviderRejected("Sadiq did not return an envelope id")
        ref = EnvelopeRef(
            envelope_id=str(envelope_id),
            reference_number=str(data.get("referenceNumber") or reference_number),
            document_id=str(data.get("documentId") or envelope_id),
        )
        logger.info("Sadiq envelope %s created for agreement %s", ref.envelope_id, agreement.pk)
        return ref

    def get_envelope_status(self, reference_number: str) -> EnvelopeStatus:
        if not self.is_configured:
            return EnvelopeStatus(status="In-progress", completion_percentage=0)
        if not reference_number:
            raise exceptions.EnvelopeNotFound("Agreement has no Sadiq reference number")

        resp = self._request("GET", f"/envelopes/{quote(reference_number, safe='')}/status")
        if resp.status_code == 404:
            raise exceptions.EnvelopeNotFound(f"Sadiq has no envelope {reference_number}")
        if resp.status_code != 200:
            raise exceptions.ProviderRejected(f"Failed to get envelope status: {resp.status_code}")
        data = self._unwrap(resp)

        status = data.get("status") or data.get("envelopeStatus")
        if not status:
            raise exceptions.ProviderRejected("Sadiq status response has no status")
        stats = data.get("signingStats") or {}
        completion = stats.get("completionPercentage")
        return EnvelopeStatus(status=str(status), completion_percentage=as_percentage(completion))

    def build_signing_url(self, envelope_id: str) -> str:
        return f"{self.signing_base_url}/sign/{quote(envelope_id, safe='')}"

    def verify_webhook_signature(self, body: bytes, signature_header: str | None) -> bool:
        if not self.webhook_secret:
            return True  # allow when not configured
        if not signature_header:
            return False
        mac = hmac.new(self.webhook_secret.encode(), body, hashlib.sha256).digest()
        expected = base64.b64encode(mac).decode()
        return hmac.compare_digest(expected, signature_header)


def as_percentage(value) -> Optional[int]:
    if value is None:
        return None
    try:
        return max(0, min(100, int(round(float(value)))))
    except (TypeError, ValueError):
        return None


def _error_text(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return f"{resp.status_code} {resp.text[:200]}"
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)
    return str(body)


def _classify_rejection(message: str, status_code: Optional[int] = None) -> exceptions.NdaError:
    """Provider rejections that name a signer field become ValidationError."""
    lowered = message.lower()
    fields = {}
    for needle, field in _DATA_PROBLEM_FIELDS:
        if needle in lowered:
            fields[field] = message
    if fields:
        return exceptions.ValidationError(f"Sadiq rejected the signer data: {message}", fields=fields)
    prefix = f"Sadiq rejected the request ({status_code})" if status_code else "Sadiq rejected the request"
    return exceptions.ProviderRejected(f"{prefix}: {message}")
