import os
import json
import smtplib
from datetime import datetime, timezone
from email.message import EmailMessage

SMTP_HOST = os.getenv("SMTP_HOST", "localhost")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
MAIL_FROM = os.getenv("MAIL_FROM", "no-reply@unilunch.com")


def build_message(email, subject, code, expires_minutes, sender=None):
    msg = EmailMessage()
    msg["From"] = sender or MAIL_FROM
    msg["To"] = email
    msg["Subject"] = subject
    msg.set_content(
        "Hello,\n\n"
        f"Your UniLunch password reset code is: {code}\n\n"
        f"The code is valid for {expires_minutes} minutes. "
        "If you did not ask to reset your password, you can ignore this email.\n"
    )
    return msg


def send_reset_code(request):
    """
    HTTP Cloud Function
    - Expects JSON: { "email": "x@y.com", "subject": "...", "code": "123456", "expires_minutes": 10 }
    - Sends the code through SMTP
    - Returns: { "ok": true, "sent_at": "..." }
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        code = data.get("code")
        subject = data.get("subject") or "Password reset code - UniLunch"
        expires_minutes = data.get("expires_minutes", 10)

        if not email or not code:
            return ("Missing email/code", 400)

        msg = build_message(email, subject, code, expires_minutes, data.get("from"))

        with smtplib.SMTP(SMTP_HOST, SMTP_PORT) as server:
            if SMTP_USER and SMTP_PASSWORD:
                server.starttls()
                server.login(SMTP_USER, SMTP_PASSWORD)
            server.send_message(msg)

        return (json.dumps({
            "ok": True,
            "sent_at": datetime.now(timezone.utc).isoformat()
        }), 200, {"Content-Type": "application/json"})

    except (smtplib.SMTPException, OSError) as e:
        return (f"Error: {str(e)}", 500)
