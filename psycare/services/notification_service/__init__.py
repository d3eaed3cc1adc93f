"""Notification Service: SOS e-mail alerts for crisis escalations.

Sends one e-mail per escalation to the configured responders through
AWS SES. Delivery is best-effort: send_crisis_alert() reports a boolean
and never raises, so the crisis response always reaches the user.
"""

from .sos_mailer import CrisisAlert, MailerConfig, NotificationSender, SosMailer

__all__ = ["CrisisAlert", "MailerConfig", "NotificationSender", "SosMailer"]
