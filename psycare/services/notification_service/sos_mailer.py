"""SOS mailer - e-mails responders when a crisis is escalated.

Failure Handling:
    - Sending failure does NOT block the crisis response
    - Every failure path returns False and logs at CRITICAL for alerting
    - With sending disabled or unconfigured, the alert is written to the
      log for manual processing
"""
import json
import logging
from abc import ABC, abstractmethod
import os
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Tuple
import uuid

import boto3
from botocore.config import Config

from psycare.shared.models import UserProfile
from psycare.shared.utils import hash_pii

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"


def parse_location(location: Optional[str]) -> Optional[Tuple[float, float]]:
    """Parse a "lat,lon" string, or None if absent or malformed."""
    if not location:
        return None
    parts = location.split(",")
    if len(parts) != 2:
        return None
    try:
        lat, lon = float(parts[0]), float(parts[1])
    except ValueError:
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        return None
    return lat, lon


@dataclass(frozen=True)
class MailerConfig:
    """Configuration for SOS e-mail delivery."""
    sender: str = ""
    recipients: Tuple[str, ...] = ()
    region: str = "us-east-1"
    enabled: bool = True
    timeout_seconds: int = 10

    @classmethod
    def from_env(cls) -> "MailerConfig":
        """Create config from environment variables.

        Environment variables:
            SOS_MAIL_SENDER: Verified SES sender address
            SOS_MAIL_RECIPIENTS: Comma-separated responder addresses
            SOS_MAIL_ENABLED: "false" disables sending
            AWS_REGION: SES region
        """
        recipients = tuple(
            r.strip() for r in os.getenv("SOS_MAIL_RECIPIENTS", "").split(",") if r.strip()
        )
        return cls(
            sender=os.getenv("SOS_MAIL_SENDER", ""),
            recipients=recipients,
            region=os.getenv("AWS_REGION", "us-east-1"),
            enabled=os.getenv("SOS_MAIL_ENABLED", "true").lower() == "true",
            timeout_seconds=int(os.getenv("SOS_MAIL_TIMEOUT_SECONDS", "10")),
        )


@dataclass(frozen=True)
class CrisisAlert:
    """Immutable SOS alert content."""
    alert_id: str
    name: str
    email: str
    mobile: str
    message: str
    location: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)

    @classmethod
    def from_profile(
        cls,
        profile: Optional[UserProfile],
        location: Optional[str],
        message: str,
    ) -> "CrisisAlert":
        return cls(
            alert_id=f"sos_{uuid.uuid4().hex[:12]}",
            name=(profile and profile.name) or UNKNOWN,
            email=(profile and profile.email) or UNKNOWN,
            mobile=(profile and profile.mobile) or UNKNOWN,
            message=message,
            location=location,
        )

    @property
    def maps_url(self) -> Optional[str]:
        coords = parse_location(self.location)
        if coords is None:
            return None
        return f"https://www.google.com/maps?q={coords[0]},{coords[1]}"

    @property
    def subject(self) -> str:
        return f"SOS Alert: {self.name} may be at risk"

    def to_email_body(self) -> str:
        """Plain-text body for responders."""
        lines = [
            "A PsyCare user may be in immediate danger.",
            "",
            f"Name: {self.name}",
            f"Email: {self.email}",
            f"Mobile: {self.mobile}",
        ]
        if self.maps_url:
            lines.append(f"Location: {self.location} ({self.maps_url})")
        else:
            lines.append("Location: not shared")
        lines.extend([
            f"Time (UTC): {self.created_at.isoformat()}",
            "",
            "Message:",
            self.message,
            "",
            "Please reach out to this person right away.",
        ])
        return "\n".join(lines)


class NotificationSender(ABC):
    """SOS notification capability consumed by the escalation orchestrator."""

    @abstractmethod
    def send_crisis_alert(
        self,
        profile: Optional[UserProfile],
        location: Optional[str],
        message: str,
    ) -> bool:
        """Deliver an alert; return False on failure instead of raising."""
        pass


class SosMailer(NotificationSender):
    """Sends crisis alerts through AWS SES."""

    def __init__(self, config: Optional[MailerConfig] = None):
        self.config = config or MailerConfig()
        self._session = boto3.session.Session(region_name=self.config.region)
        self._client_lock = threading.Lock()
        self._ses_client = None

        logger.info(
            "SOS_MAILER_INITIALIZED",
            extra={
                "enabled": self.config.enabled,
                "recipient_count": len(self.config.recipients),
                "region": self.config.region,
            }
        )

    @property
    def ses_client(self):
        """Lazy initialization of the SES client."""
        if self._ses_client is None and self.config.enabled:
            with self._client_lock:
                if self._ses_client is None:
                    try:
                        self._ses_client = self._session.client(
                            "ses",
                            config=Config(
                                connect_timeout=self.config.timeout_seconds,
                                read_timeout=self.config.timeout_seconds,
                            ),
                        )
                    except Exception as e:
                        logger.error(
                            "SES_CLIENT_INIT_FAILED",
                            extra={"error": str(e)}
                        )
        return self._ses_client

    def send_crisis_alert(
        self,
        profile: Optional[UserProfile],
        location: Optional[str],
        message: str,
    ) -> bool:
        """Send an SOS e-mail about the user behind profile.

        Args:
            profile: Requester profile; missing fields become "Unknown"
            location: Optional "lat,lon" shared with consent
            message: The message that triggered the escalation

        Returns:
            True if SES accepted the e-mail, False otherwise. Never raises.
        """
        alert = CrisisAlert.from_profile(profile, location, message)
        user_id_hash = hash_pii(profile.id) if profile else "unknown"

        if not self.config.enabled or not self.config.sender or not self.config.recipients:
            self._log_fallback(alert, user_id_hash, reason="mailer_disabled_or_unconfigured")
            return False

        try:
            if self.ses_client is None:
                self._log_fallback(alert, user_id_hash, reason="ses_client_unavailable")
                return False

            response = self.ses_client.send_email(
                Source=self.config.sender,
                Destination={"ToAddresses": list(self.config.recipients)},
                Message={
                    "Subject": {"Data": alert.subject, "Charset": "UTF-8"},
                    "Body": {"Text": {"Data": alert.to_email_body(), "Charset": "UTF-8"}},
                },
            )
        except Exception as e:
            logger.critical(
                "SOS_MAIL_FAILED",
                extra={
                    "alert_id": alert.alert_id,
                    "user_id_hash": user_id_hash,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "action": "MANUAL_REVIEW_REQUIRED",
                }
            )
            return False

        logger.critical(
            "SOS_MAIL_SENT",
            extra={
                "alert_id": alert.alert_id,
                "user_id_hash": user_id_hash,
                "location_shared": alert.maps_url is not None,
                "ses_message_id": response.get("MessageId"),
            }
        )
        return True

    def _log_fallback(self, alert: CrisisAlert, user_id_hash: str, reason: str) -> None:
        # responders pick these up from the log stream
        payload: Dict[str, object] = {
            "alert_id": alert.alert_id,
            "user_id_hash": user_id_hash,
            "location_shared": alert.maps_url is not None,
            "created_at": alert.created_at.isoformat(),
        }
        logger.critical(
            "SOS_MAIL_FALLBACK_LOG",
            extra={
                "payload": json.dumps(payload),
                "reason": reason,
                "action": "MANUAL_PROCESSING_REQUIRED",
            }
        )
