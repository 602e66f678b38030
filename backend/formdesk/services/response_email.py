"""New-response notification email.

HTML + plain text body built from a response's answers, sent to the client's
recipients through Brevo's transactional API. EmailDeliveryService owns the
email_notifications bookkeeping around the send.
"""
import html
import logging
import requests
from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.orm import Session

from formdesk.core.config import settings
from formdesk.models.client import Client
from formdesk.models.notification import EmailNotification, NotificationStatus
from formdesk.models.response import Response
from formdesk.services import notification_queue
from formdesk.services.email_validation import is_valid_email
from formdesk.services.form_renderer import format_number
from formdesk.services.notification_queue import utcnow

logger = logging.getLogger(__name__)

NO_VALID_RECIPIENTS = "No valid recipients"
TERMINAL_STATUS_CODES = {401, 403}

ACCENT = "#3b82f6"
STAR_SLOTS = 5

TEXT_TYPES = {"text_input", "text_area"}
CHOICE_TYPES = {"multiple_choice", "sp_multiple_choice", "sp_dropdown"}
PICTURE_TYPES = {"image_selection", "sp_picture_choice"}
FILE_TYPES = {"file_upload", "sp_file_upload"}
SCALE_TYPES = {"opinion_scale", "sp_rating", "sp_opinion_scale", "sp_nps"}


def _esc(value) -> str:
    return html.escape(str(value)) if value is not None else ""


def format_submitted(value) -> str:
    """DD/MM/YYYY, HH:MM"""
    if not value:
        return ""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return value.strftime("%d/%m/%Y, %H:%M")


def star_rating(rating: int, scale_max: Optional[int] = None) -> str:
    """Five glyph slots whatever the field's own range; the ratio keeps the real max."""
    filled = max(0, min(STAR_SLOTS, int(rating)))
    return f"{'★' * filled}{'☆' * (STAR_SLOTS - filled)} ({rating}/{scale_max or STAR_SLOTS})"


def dimensions_text(answer: dict) -> str:
    units = answer.get("units") or ""
    parts = []
    for key, label in (("width", "Width"), ("height", "Height"), ("depth", "Depth")):
        value = answer.get(key)
        if value:
            parts.append(f"{label}: {format_number(value)}{units}")
    return " × ".join(parts) if parts else "No dimensions provided"


def _frames_summary(frames: List[dict]) -> str:
    return ", ".join(
        f"Frame {f['frame_number']}: {f['measurements_text']}"
        for f in frames if f.get("measurements_text")
    )


def _frames_selected(answer: dict) -> str:
    count = answer.get("frames_count")
    if not count:
        return "No frame count selected"
    return f"Selected {count} frame{'' if count == 1 else 's'}"


def format_answer_html(answer: dict, frames: List[dict]) -> str:
    kind = answer.get("question_type")
    option = answer.get("selected_option") or {}

    if kind in CHOICE_TYPES:
        return _esc(option.get("label") or answer.get("answer_text") or "No selection")

    if kind in PICTURE_TYPES:
        if option:
            parts = []
            if option.get("image_url"):
                parts.append(
                    f'<img src="{_esc(option["image_url"])}" alt="{_esc(option.get("label"))}" '
                    f'style="max-width:200px; max-height:150px; border-radius:8px; border:2px solid #e5e7eb;">'
                )
            parts.append(f'<p style="margin:5px 0; font-weight:600;">{_esc(option.get("label"))}</p>')
            return f'<div style="margin:10px 0;">{"".join(parts)}</div>'
        return _esc(answer.get("answer_text") or "No image selected")

    if kind in FILE_TYPES:
        if answer.get("file_url"):
            label = answer.get("file_name") or answer["file_url"]
            size = answer.get("file_size")
            size_text = f"{round(size / 1024)} KB" if size else "Unknown size"
            return (
                f'<div style="display:inline-block; padding:10px 15px; background:#f3f4f6; border-radius:8px; border-left:4px solid {ACCENT};">'
                f'<a href="{_esc(answer["file_url"])}" style="color:{ACCENT}; text-decoration:none; font-weight:600;">📎 {_esc(label)}</a>'
                f'<p style="margin:5px 0 0; font-size:12px; color:#6b7280;">{size_text}</p></div>'
            )
        return "No file uploaded"

    if kind == "dimensions":
        return _esc(dimensions_text(answer))

    if kind in SCALE_TYPES:
        if answer.get("scale_rating") is None:
            return "No rating provided"
        return _esc(star_rating(answer["scale_rating"], answer.get("scale_max")))

    if kind == "frames_plan":
        content = _frames_selected(answer)
        summary = _frames_summary(frames)
        if summary:
            content = f"{_esc(content)}<br><strong>Measurements:</strong> {_esc(summary)}"
        return content

    return _esc(answer.get("answer_text") or "No response")


def format_answer_text(answer: dict, frames: List[dict]) -> str:
    kind = answer.get("question_type")
    option = answer.get("selected_option") or {}

    if kind in CHOICE_TYPES or kind in PICTURE_TYPES:
        return option.get("label") or answer.get("answer_text") or "No selection"
    if kind in FILE_TYPES:
        if answer.get("file_url"):
            return f"File: {answer.get('file_name') or answer['file_url']} ({answer['file_url']})"
        return "No file uploaded"
    if kind == "dimensions":
        return dimensions_text(answer)
    if kind in SCALE_TYPES:
        if answer.get("scale_rating") is None:
            return "No rating provided"
        return f"Rating: {answer['scale_rating']}/{answer.get('scale_max') or STAR_SLOTS}"
    if kind == "frames_plan":
        summary = _frames_summary(frames)
        text = _frames_selected(answer)
        return f"{text} (Measurements: {summary})" if summary else text
    return answer.get("answer_text") or "No response"


def collect_response_data(response: Response) -> dict:
    """Everything the email needs, flattened out of the ORM rows."""
    form = response.form
    client = form.client if form else None

    answers = []
    for answer in sorted(response.answers, key=lambda a: a.step.step_order if a.step is not None else 0):
        step = answer.step
        option = None
        if step is not None and answer.selected_option_id:
            for o in step.options:
                if o.id == answer.selected_option_id:
                    option = {"id": o.id, "label": o.label, "image_url": o.image_url}
                    break
        answers.append({
            "question": step.title if step else "Question",
            "question_type": step.question_type if step else None,
            "answer_text": answer.answer_text,
            "selected_option": option,
            "file_url": answer.file_url,
            "file_name": answer.file_name,
            "file_size": answer.file_size,
            "width": answer.width,
            "height": answer.height,
            "depth": answer.depth,
            "units": answer.units,
            "scale_rating": answer.scale_rating,
            "scale_max": step.scale_max if step else None,
            "frames_count": answer.frames_count,
        })

    frames = [
        {
            "frame_number": f.frame_number,
            "image_url": f.image_url,
            "location_text": f.location_text,
            "measurements_text": f.measurements_text,
        }
        for f in response.frames
    ]

    return {
        "response_id": response.id,
        "form_id": response.form_id,
        "form_name": form.name if form else "Unknown Form",
        "client_name": client.name if client else "Unknown Client",
        "contact_name": response.contact_name,
        "contact_email": response.contact_email,
        "contact_phone": response.contact_phone,
        "contact_postcode": response.contact_postcode,
        "submitted_at": response.submitted_at,
        "answers": answers,
        "frames": frames,
    }


def build_response_email(data: dict) -> Tuple[str, str, str]:
    """Returns (subject, html, text)."""
    form_name = data.get("form_name") or "Unknown Form"
    client_name = data.get("client_name") or "Unknown Client"
    submitted = format_submitted(data.get("submitted_at"))
    answers = data.get("answers") or []
    frames = data.get("frames") or []
    responses_url = f"{settings.APP_URL.rstrip('/')}/responses"

    subject = f"New Response Received - {form_name}"

    h = []
    h.append('<!DOCTYPE html><html><head><meta charset="utf-8"><meta name="viewport" content="width=device-width, initial-scale=1.0">')
    h.append(f'<title>New Form Response - {_esc(form_name)}</title></head>')
    h.append('<body style="margin:0; padding:0; font-family:-apple-system,BlinkMacSystemFont,Segoe UI,Roboto,Helvetica,Arial,sans-serif; line-height:1.6; color:#333;">')
    h.append('<div style="max-width:600px; margin:0 auto; padding:20px; background:#ffffff;">')

    # Header
    h.append('<div style="text-align:center; margin-bottom:30px; padding:30px; background:linear-gradient(135deg, #667eea 0%, #764ba2 100%); border-radius:15px; color:#ffffff;">')
    h.append('<h1 style="margin:0 0 10px; font-size:24px; font-weight:700;">🎉 New Form Response!</h1>')
    h.append('<p style="margin:0; font-size:16px; opacity:0.9;">You\'ve received a new submission</p>')
    h.append('</div>')

    # Form details
    h.append('<div style="margin-bottom:30px; padding:20px; background:#f8fafc; border-radius:10px; border-left:4px solid #6366f1;">')
    h.append('<h2 style="margin:0 0 15px; color:#4338ca; font-size:18px;">📋 Form Details</h2>')
    h.append(f'<p style="margin:5px 0; color:#1f2937;"><strong>Form Name:</strong> {_esc(form_name)}</p>')
    h.append(f'<p style="margin:5px 0; color:#1f2937;"><strong>Client:</strong> {_esc(client_name)}</p>')
    h.append(f'<p style="margin:5px 0; color:#1f2937;"><strong>Submitted:</strong> {_esc(submitted)}</p>')
    h.append('</div>')

    # Contact
    contact = []
    if data.get("contact_name"):
        contact.append(f'<strong>Name:</strong> {_esc(data["contact_name"])}')
    if data.get("contact_email"):
        email = _esc(data["contact_email"])
        contact.append(f'<strong>Email:</strong> <a href="mailto:{email}" style="color:{ACCENT};">{email}</a>')
    if data.get("contact_phone"):
        phone = _esc(data["contact_phone"])
        contact.append(f'<strong>Phone:</strong> <a href="tel:{phone}" style="color:{ACCENT};">{phone}</a>')
    if data.get("contact_postcode"):
        contact.append(f'<strong>Postcode:</strong> {_esc(data["contact_postcode"])}')
    if contact:
        h.append('<div style="margin:30px 0; padding:20px; background:#ecfdf5; border-radius:10px; border-left:4px solid #10b981;">')
        h.append('<h2 style="margin:0 0 15px; color:#065f46; font-size:18px;">👤 Contact Information</h2>')
        h.append(f'<div style="color:#047857; line-height:1.6;">{"<br>".join(contact)}</div>')
        h.append('</div>')

    # Answers
    h.append('<div style="margin-bottom:30px;">')
    h.append('<h2 style="margin:0 0 20px; color:#1f2937; font-size:20px; border-bottom:2px solid #e5e7eb; padding-bottom:10px;">💬 Form Responses</h2>')
    for i, answer in enumerate(answers, 1):
        h.append(f'<div style="margin-bottom:25px; padding:20px; background:#f9fafb; border-radius:10px; border-left:4px solid {ACCENT};">')
        h.append(f'<h3 style="margin:0 0 15px; color:#1f2937; font-size:16px; font-weight:600;">{i}. {_esc(answer.get("question") or "Question")}</h3>')
        h.append(f'<div style="color:#374151;">{format_answer_html(answer, frames)}</div>')
        h.append('</div>')
    h.append('</div>')

    # Frames
    if frames:
        h.append('<div style="margin:30px 0; padding:20px; background:#fef3c7; border-radius:10px; border-left:4px solid #f59e0b;">')
        h.append('<h2 style="margin:0 0 15px; color:#92400e; font-size:18px;">🖼️ Frame Data</h2>')
        for frame in frames:
            number = frame.get("frame_number")
            h.append('<div style="margin-bottom:15px; padding:15px; background:#ffffff; border-radius:8px;">')
            h.append(f'<h4 style="margin:0 0 10px; color:#92400e;">Frame {number}</h4>')
            if frame.get("image_url"):
                h.append(f'<img src="{_esc(frame["image_url"])}" alt="Frame {number}" style="max-width:200px; max-height:150px; border-radius:6px; margin-bottom:10px;">')
            if frame.get("location_text"):
                h.append(f'<p><strong>Location:</strong> {_esc(frame["location_text"])}</p>')
            if frame.get("measurements_text"):
                h.append(f'<p><strong>Measurements:</strong> {_esc(frame["measurements_text"])}</p>')
            h.append('</div>')
        h.append('</div>')

    # CTA
    h.append('<div style="text-align:center; margin:30px 0;">')
    h.append(f'<a href="{_esc(responses_url)}" style="display:inline-block; padding:15px 30px; background:linear-gradient(135deg, #667eea 0%, #764ba2 100%); color:#ffffff; text-decoration:none; border-radius:25px; font-weight:600; font-size:16px;">🔗 View All Responses</a>')
    h.append('</div>')

    # Footer
    h.append('<div style="margin-top:40px; padding:20px; background:#f3f4f6; border-radius:10px; text-align:center; color:#6b7280; font-size:14px;">')
    h.append(f'<p style="margin:0 0 10px;">This email was sent automatically by {_esc(settings.EMAIL_SENDER_NAME)}</p>')
    h.append(f'<p style="margin:0;"><a href="mailto:{_esc(settings.EMAIL_SENDER_EMAIL)}" style="color:{ACCENT}; text-decoration:none;">{_esc(settings.EMAIL_SENDER_EMAIL)}</a></p>')
    h.append('</div>')

    h.append('</div></body></html>')

    # Plain text
    t = ["NEW FORM RESPONSE RECEIVED!", ""]
    t.append(f"Form: {form_name}")
    t.append(f"Client: {client_name}")
    t.append(f"Submitted: {submitted}")
    t.append("")

    contact_lines = [
        f"{label}: {data[key]}"
        for key, label in (
            ("contact_name", "Name"),
            ("contact_email", "Email"),
            ("contact_phone", "Phone"),
            ("contact_postcode", "Postcode"),
        )
        if data.get(key)
    ]
    if contact_lines:
        t.append("CONTACT INFORMATION:")
        t.extend(contact_lines)
        t.append("")

    t.append("RESPONSES:")
    for i, answer in enumerate(answers, 1):
        t.append(f"{i}. {answer.get('question') or 'Question'}")
        t.append(f"   {format_answer_text(answer, frames)}")
        t.append("")

    if frames:
        t.append("FRAME DATA:")
        for frame in frames:
            t.append(f"Frame {frame.get('frame_number')}:")
            if frame.get("location_text"):
                t.append(f"  Location: {frame['location_text']}")
            if frame.get("measurements_text"):
                t.append(f"  Measurements: {frame['measurements_text']}")
            if frame.get("image_url"):
                t.append(f"  Image: {frame['image_url']}")
            t.append("")

    t.append(f"View all responses: {responses_url}")
    t.append("")
    t.append("---")
    t.append(f"This email was sent automatically by {settings.EMAIL_SENDER_NAME}")

    return subject, "\n".join(h), "\n".join(t)


def resolve_recipients(client: Client) -> List[str]:
    """Valid primary first, then valid additional addresses without repeats."""
    recipients = []
    seen = set()

    candidates = [(client.client_email, True)] + [(e, False) for e in (client.additional_emails or [])]
    for raw, primary in candidates:
        email = (raw or "").strip() if isinstance(raw, str) else ""
        if not email:
            continue
        if not is_valid_email(email):
            logger.warning("Skipping invalid %s email address for client %s: %s",
                           "primary" if primary else "additional", client.id, email)
            continue
        if email.lower() in seen:
            continue
        seen.add(email.lower())
        recipients.append(email)
    return recipients


def send_email(
    recipients: List[str],
    subject: str,
    html_body: str,
    text_body: str,
    recipient_name: Optional[str] = None,
    timeout: Optional[int] = None,
) -> dict:
    """Send through Brevo's transactional endpoint.

    terminal=True in the result marks configuration failures that are not retried.
    """
    if not settings.BREVO_API_KEY:
        logger.warning("Brevo not configured - skipping response email")
        return {"success": False, "error": "Brevo not configured", "terminal": True}

    if not recipients:
        return {"success": False, "error": NO_VALID_RECIPIENTS, "terminal": True}

    payload = {
        "sender": {"name": settings.EMAIL_SENDER_NAME, "email": settings.EMAIL_SENDER_EMAIL},
        "to": [{"email": r, "name": recipient_name or r} for r in recipients],
        "subject": subject,
        "htmlContent": html_body,
        "textContent": text_body,
    }

    try:
        resp = requests.post(
            settings.BREVO_API_URL,
            json=payload,
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
                "api-key": settings.BREVO_API_KEY,
            },
            timeout=timeout or settings.EMAIL_TIMEOUT,
        )
        if 200 <= resp.status_code < 300:
            msg_id = ""
            try:
                msg_id = resp.json().get("messageId", "")
            except ValueError:
                pass
            logger.info("Response email sent to %s - msg_id: %s", ", ".join(recipients), msg_id)
            return {"success": True, "message_id": msg_id}
        else:
            logger.error("Brevo error %s: %s", resp.status_code, resp.text[:500])
            # 401/403: bad or revoked API key
            return {
                "success": False,
                "error": f"Brevo returned {resp.status_code}",
                "terminal": resp.status_code in TERMINAL_STATUS_CODES,
            }
    except requests.RequestException as e:
        logger.error("Failed to send response email: %s", e)
        return {"success": False, "error": str(e)}


class EmailDeliveryService:
    def __init__(self, db: Session, timeout: Optional[int] = None, max_retries: Optional[int] = None):
        self.db = db
        self.timeout = timeout or settings.EMAIL_TIMEOUT
        self.max_retries = max_retries or settings.EMAIL_MAX_RETRIES

    def claim(self, job_id: str) -> bool:
        return notification_queue.claim(
            self.db,
            EmailNotification,
            job_id,
            counter=EmailNotification.retry_count,
            max_count=self.max_retries,
        )

    def send_for(self, response_id: str) -> dict:
        """Send the notification email for one response.

        Result status is one of sent, retry, failed, skipped.
        """
        has_jobs = (
            self.db.query(EmailNotification.id)
            .filter(EmailNotification.response_id == response_id)
            .first()
        ) is not None
        pending_ids = [
            row.id for row in
            self.db.query(EmailNotification.id)
            .filter(
                EmailNotification.response_id == response_id,
                EmailNotification.status == NotificationStatus.PENDING.value,
            )
            .all()
        ]
        claimed = [job_id for job_id in pending_ids if self.claim(job_id)]
        if has_jobs and not claimed:
            logger.info("Email for response %s already handled; skipping", response_id)
            return {"success": False, "status": "skipped", "error": "No pending email job"}

        response = self.db.get(Response, response_id)
        form = response.form if response else None
        client = form.client if form else None
        if response is None:
            return self._fail(claimed, f"Response {response_id} not found")
        if form is None:
            return self._fail(claimed, f"Form for response {response_id} not found")
        if client is None:
            return self._fail(claimed, f"Client for form {form.id} not found")

        recipients = resolve_recipients(client)
        if not recipients:
            return self._fail(claimed, NO_VALID_RECIPIENTS)

        subject, html_body, text_body = build_response_email(collect_response_data(response))
        result = send_email(
            recipients, subject, html_body, text_body,
            recipient_name=client.name, timeout=self.timeout,
        )

        if not result["success"] and result.get("terminal"):
            return self._fail(claimed, result.get("error"))

        if result["success"]:
            now = utcnow()
            for job in self._jobs(claimed):
                job.status = NotificationStatus.SENT.value
                job.sent_at = now
                job.error_message = None
                job.claimed_at = None
            self.db.commit()
            return {"success": True, "status": "sent", "recipients": recipients}

        status = "retry"
        for job in self._jobs(claimed):
            job.retry_count = (job.retry_count or 0) + 1
            job.error_message = result.get("error")
            job.claimed_at = None
            if job.retry_count >= self.max_retries:
                job.status = NotificationStatus.FAILED.value
                status = "failed"
            else:
                job.status = NotificationStatus.PENDING.value
        self.db.commit()
        if not claimed:
            status = "failed"
        return {"success": False, "status": status, "recipients": recipients, "error": result.get("error")}

    def process_pending(self, limit: Optional[int] = None) -> dict:
        """Send for each response holding a pending job, oldest first."""
        limit = limit or settings.EMAIL_BATCH_SIZE
        rows = (
            self.db.query(EmailNotification.response_id)
            .filter(
                EmailNotification.status == NotificationStatus.PENDING.value,
                EmailNotification.retry_count < self.max_retries,
            )
            .group_by(EmailNotification.response_id)
            .order_by(func.min(EmailNotification.created_at), EmailNotification.response_id)
            .limit(limit)
            .all()
        )
        response_ids = [row.response_id for row in rows]

        stats = {"processed": 0, "successful": 0, "failed": 0, "retried": 0, "skipped": 0}
        outcome_keys = {"sent": "successful", "failed": "failed", "retry": "retried"}
        for response_id in response_ids:
            result = self.send_for(response_id)
            if result["status"] == "skipped":
                stats["skipped"] += 1
                continue
            stats["processed"] += 1
            stats[outcome_keys[result["status"]]] += 1

        if response_ids:
            logger.info("Email batch finished: %s", stats)
        return stats

    def _jobs(self, job_ids: List[str]) -> List[EmailNotification]:
        if not job_ids:
            return []
        return self.db.query(EmailNotification).filter(EmailNotification.id.in_(job_ids)).all()

    def _fail(self, job_ids: List[str], message: str) -> dict:
        """Terminal failure: configuration problems are not retried."""
        logger.error("Email notification failed: %s", message)
        for job in self._jobs(job_ids):
            job.status = NotificationStatus.FAILED.value
            job.error_message = message
            job.claimed_at = None
        self.db.commit()
        return {"success": False, "status": "failed", "error": message}
