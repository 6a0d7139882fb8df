"""
Job posting email templates (HTML and plain text).

The queue worker that actually sends mail renders a queued
emailNotifications record with these functions.
"""

from datetime import date, datetime
from html import escape
from typing import Any, Dict, Optional
from urllib.parse import quote, urlencode

from placement_portal.core.config import get_settings


def format_salary(salary: Any) -> str:
    """Numbers are rupees per annum shown in lakhs; text is shown as is."""
    if not salary:
        return "Not specified"
    if isinstance(salary, (int, float)):
        return f"₹{salary / 100000:.1f} LPA"
    return str(salary)


def format_date(value: Any) -> str:
    if not value:
        return "TBD"
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    if isinstance(value, (date, datetime)):
        return f"{value:%A}, {value:%B} {value.day}, {value.year}"
    return str(value)


def truncate(text: Optional[str], limit: int) -> str:
    if not text:
        return ""
    return text[:limit] + ("..." if len(text) > limit else "")


def unsubscribe_url(email: str, token: str, base_url: Optional[str] = None) -> str:
    base_url = (base_url or get_settings().app_base_url).rstrip("/")
    return f"{base_url}/unsubscribe?" + urlencode({"token": token, "email": email}, quote_via=quote)


def render_job_posting_email_html(data: Dict[str, Any], base_url: Optional[str] = None) -> str:
    base = (base_url or get_settings().app_base_url).rstrip("/")
    link = unsubscribe_url(data["to"], data["unsubscribe_token"], base)
    description = truncate(data.get("job_description"), 200)
    description_block = (
        f'<div style="margin-top: 20px;"><strong>Job Description:</strong>'
        f'<p style="color: #666;">{escape(description)}</p></div>'
        if description else ""
    )
    return f"""<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>New Job Opportunity - {escape(data.get("job_title") or "")}</title></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h1>New Job Opportunity!</h1>
  <p>Dear {escape(data.get("student_name") or "Student")},</p>
  <p>A new position has been posted that matches your profile:</p>
  <div style="background: #f8f9fa; padding: 25px; border-left: 4px solid #667eea;">
    <h2>{escape(data.get("job_title") or "")}</h2>
    <h3>{escape(data.get("company") or "Company")}</h3>
    <p><strong>Location:</strong> {escape(data.get("location") or "Not specified")}</p>
    <p><strong>Salary:</strong> {escape(format_salary(data.get("salary")))}</p>
    <p><strong>Drive Date:</strong> {escape(format_date(data.get("drive_date")))}</p>
    <p><strong>Apply Before:</strong> {escape(format_date(data.get("application_deadline")))}</p>
    {description_block}
  </div>
  <p style="text-align: center;"><a href="{escape(base)}/student">View Job Details &amp; Apply</a></p>
  <p>Good luck with your application!<br><strong>Placement Cell Team</strong></p>
  <p style="font-size: 12px; color: #aaa;">
    You received this email because you're registered for job notifications.<br>
    <a href="{escape(link)}">Unsubscribe from job notifications</a>
  </p>
</body>
</html>
"""


def render_job_posting_email_text(data: Dict[str, Any], base_url: Optional[str] = None) -> str:
    base = (base_url or get_settings().app_base_url).rstrip("/")
    link = unsubscribe_url(data["to"], data["unsubscribe_token"], base)
    description = truncate(data.get("job_description"), 300)
    lines = [
        "New Job Opportunity!",
        "",
        f"Dear {data.get('student_name') or 'Student'},",
        "",
        "We're excited to inform you about a new job opportunity that matches your profile:",
        "",
        data.get("job_title") or "",
        data.get("company") or "Company",
        "",
        "Job Details:",
        f"- Location: {data.get('location') or 'Not specified'}",
        f"- Salary: {format_salary(data.get('salary'))}",
        f"- Drive Date: {format_date(data.get('drive_date'))}",
        f"- Apply Before: {format_date(data.get('application_deadline'))}",
        "",
    ]
    if description:
        lines += ["Job Description:", description, ""]
    lines += [
        f"Apply now: {base}/student",
        "",
        "Good luck with your application!",
        "Placement Cell Team",
        "",
        "---",
        "You received this email because you're registered for job notifications.",
        f"To unsubscribe: {link}",
    ]
    return "\n".join(lines)
