import logging
from urllib.error import URLError

from python_http_client.exceptions import HTTPError
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail, To

from game_student.errors import NotificationError

logger = logging.getLogger(__name__)

REGISTRATION_SUBJECT = "Bem vindo a Escola do Jogo!"


class EmailSender:
    """Transactional email through the SendGrid client."""

    def __init__(self, api_key: str, from_email: str, from_name: str):
        self.from_email = from_email
        self.from_name = from_name
        self.client = SendGridAPIClient(api_key) if api_key else None

    def send_registration_email(self, destination_email: str):
        message = Mail(
            from_email=(self.from_email, self.from_name),
            to_emails=To(destination_email, "Estudante"),
            subject=REGISTRATION_SUBJECT,
            plain_text_content="Bem vindo a Escola do Jogo.",
            html_content="<strong>Obrigado!</strong>",
        )
        self._send(destination_email, message)

    def _send(self, destination_email: str, message: Mail):
        if self.client is None:
            logger.warning("SENDGRID_API_KEY is not set, skipping email to %s", destination_email)
            return

        try:
            response = self.client.send(message)
        except HTTPError as e:
            logger.error("Sendgrid rejected email to %s: %s %s", destination_email, e.status_code, e.body)
            raise NotificationError(f"sending email: sendgrid answered {e.status_code}") from e
        except URLError as e:
            logger.error("Sending email with sendgrid failed: %s", e)
            raise NotificationError(f"sending email: {e}") from e

        if not 200 <= response.status_code < 300:
            logger.error("Sendgrid answered %s for email to %s", response.status_code, destination_email)
            raise NotificationError(f"sending email: sendgrid answered {response.status_code}")

        logger.info("Email to %s accepted by sendgrid (%s)", destination_email, response.status_code)
