import smtplib

import pytest

from services import mailer as mailer_mod
from services.mailer import LogMailer, MailError, SmtpMailer, get_mailer


class FakeSMTP:
    instances = []
    fail_on = None

    def __init__(self, host, port, timeout=None):
        self.host, self.port, self.timeout = host, port, timeout
        self.steps = []
        self.messages = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.steps.append("starttls")

    def login(self, user, password):
        self.steps.append(("login", user))
        if FakeSMTP.fail_on == "login":
            raise smtplib.SMTPAuthenticationError(535, b"bad creds")

    def send_message(self, msg):
        self.steps.append("send")
        self.messages.append(msg)


@pytest.fixture()
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    FakeSMTP.fail_on = None
    monkeypatch.setattr(mailer_mod.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


def test_smtp_mailer_sends_html(fake_smtp):
    m = SmtpMailer("smtp.test", 587, "shop@example.com", "app-pass", "Shop <shop@example.com>", timeout=5)
    m.send("buyer@example.com", "Your order", "<p>hi</p>")

    smtp, = fake_smtp.instances
    assert (smtp.host, smtp.port, smtp.timeout) == ("smtp.test", 587, 5)
    assert smtp.steps == ["starttls", ("login", "shop@example.com"), "send"]
    msg = smtp.messages[0]
    assert msg["To"] == "buyer@example.com"
    assert msg["From"] == "Shop <shop@example.com>"
    assert msg["Subject"] == "Your order"
    assert msg.get_body(preferencelist=("html",)).get_content().strip() == "<p>hi</p>"


def test_smtp_failure_becomes_mail_error(fake_smtp):
    fake_smtp.fail_on = "login"
    m = SmtpMailer("smtp.test", 587, "u", "p", "u")
    with pytest.raises(MailError):
        m.send("buyer@example.com", "s", "<p/>")


def test_sender_defaults_to_smtp_user():
    assert SmtpMailer("h", 25, "me@example.com", "p", None).sender == "me@example.com"


def test_get_mailer_backends(monkeypatch):
    monkeypatch.setenv("MAIL_BACKEND", "log")
    assert isinstance(get_mailer(), LogMailer)
    monkeypatch.setenv("MAIL_BACKEND", "smtp")
    monkeypatch.setenv("SMTP_PORT", "2525")
    m = get_mailer()
    assert isinstance(m, SmtpMailer) and m.port == 2525
    monkeypatch.setenv("MAIL_BACKEND", "pigeon")
    with pytest.raises(RuntimeError):
        get_mailer()


def test_log_mailer_does_not_raise():
    LogMailer().send("a@b.c", "s", "<p>x</p>")
