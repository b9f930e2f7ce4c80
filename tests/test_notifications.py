from urllib.error import URLError

import pytest
from python_http_client.exceptions import UnauthorizedError

from game_student.errors import NotificationError
from game_student.notifications import REGISTRATION_SUBJECT, EmailSender


@pytest.fixture
def client_class(mocker):
    return mocker.patch("game_student.notifications.SendGridAPIClient")


@pytest.fixture
def sender(client_class, mocker):
    client_class.return_value.send.return_value = mocker.Mock(status_code=202)
    return EmailSender("SG.test", "no-reply@companyemail.com", "Escola do Jogo")


def test_registration_email_is_sent(sender, client_class):
    sender.send_registration_email("a@b.com")

    client_class.assert_called_once_with("SG.test")
    message = client_class.return_value.send.call_args.args[0].get()
    assert message["personalizations"][0]["to"][0] == {"email": "a@b.com", "name": "Estudante"}
    assert message["from"] == {"email": "no-reply@companyemail.com", "name": "Escola do Jogo"}
    assert message["subject"] == REGISTRATION_SUBJECT
    assert [c["type"] for c in message["content"]] == ["text/plain", "text/html"]


def test_rejected_email_raises(sender, client_class):
    client_class.return_value.send.side_effect = UnauthorizedError(401, "Unauthorized", b"{}", {})

    with pytest.raises(NotificationError, match="401"):
        sender.send_registration_email("a@b.com")


def test_unexpected_status_raises(sender, client_class, mocker):
    client_class.return_value.send.return_value = mocker.Mock(status_code=302)

    with pytest.raises(NotificationError, match="302"):
        sender.send_registration_email("a@b.com")


def test_connection_error_raises(sender, client_class):
    client_class.return_value.send.side_effect = URLError("no route")

    with pytest.raises(NotificationError):
        sender.send_registration_email("a@b.com")


def test_no_api_key_skips_sending(client_class):
    EmailSender("", "no-reply@companyemail.com", "Escola do Jogo").send_registration_email("a@b.com")

    client_class.assert_not_called()
