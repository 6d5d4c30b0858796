"""Mail-dispatch seam. The gateway hands over (recipient, token); formatting and delivery live elsewhere."""

import logging
from typing import Protocol

from showroom.core.exceptions import ShowroomError
from showroom.core.secret_provider import mask_secret

logger = logging.getLogger(__name__)


class MailDeliveryError(ShowroomError):
    """Raised by a Mailer when a message could not be handed to the transport."""


class Mailer(Protocol):
    def send_password_reset(self, recipient: str, token: str) -> None: ...

    def send_email_verification(self, recipient: str, token: str) -> None: ...


class LoggingMailer:
    """Default mailer for development: records that a message would be sent, with a masked token."""

    def send_password_reset(self, recipient: str, token: str) -> None:
        logger.info(
            "Password reset mail queued",
            extra={"recipient_domain": recipient.rpartition("@")[2], "token": mask_secret(token)},
        )

    def send_email_verification(self, recipient: str, token: str) -> None:
        logger.info(
            "Email verification mail queued",
            extra={"recipient_domain": recipient.rpartition("@")[2], "token": mask_secret(token)},
        )
