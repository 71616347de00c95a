"""
Email bodies for terminal job transitions.

Placeholders are HTML-escaped before they are inserted into the HTML body;
the text body carries the raw values.
"""

import html
from string import Template

from notifications.email import EmailNotification

BRAND = "Ira Analytics"

_HTML_LAYOUT = Template("""<!DOCTYPE html>
<html>
<body style="font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; background: #0f172a; color: #e2e8f0;">
  <div style="max-width: 600px; margin: 0 auto; padding: 24px;">
    <div style="background: $accent; padding: 24px; border-radius: 12px 12px 0 0;">
      <h1 style="color: white; margin: 0; font-size: 24px;">$brand</h1>
    </div>
    <div style="background: #1e293b; padding: 24px; border-radius: 0 0 12px 12px;">
      $content
    </div>
    <p style="text-align: center; margin-top: 24px; color: #64748b; font-size: 12px;">$brand - Enterprise Reporting System</p>
  </div>
</body>
</html>
""")


def _layout(accent: str, content: str) -> str:
    return _HTML_LAYOUT.substitute(accent=accent, brand=BRAND, content=content)


def job_completed_email(to_address: str, job_name: str, download_url: str) -> EmailNotification:
    name, url = html.escape(job_name), html.escape(download_url, quote=True)
    body = (
        "<h2>Export Complete</h2>"
        f"<p>Your report <strong>{name}</strong> has been generated successfully and is ready for download.</p>"
        f'<a href="{url}" style="display: inline-block; background: #0ea5e9; color: white; padding: 12px 24px; '
        'text-decoration: none; border-radius: 8px;">Download Report</a>'
        '<p style="margin-top: 24px; color: #94a3b8;">This link will expire in 24 hours.</p>'
    )
    text = (
        f"Export Complete\n\n"
        f"Your report {job_name} has been generated successfully and is ready for download:\n"
        f"{download_url}\n\nThis link will expire in 24 hours.\n"
    )
    return EmailNotification(
        to_address=to_address,
        subject=f"Export Complete: {job_name}",
        text=text,
        html=_layout("#0ea5e9", body),
    )


def job_failed_email(to_address: str, job_name: str, error_message: str) -> EmailNotification:
    name, error = html.escape(job_name), html.escape(error_message)
    body = (
        "<h2>Export Failed</h2>"
        f"<p>Unfortunately, your report <strong>{name}</strong> could not be generated.</p>"
        '<div style="background: #450a0a; border: 1px solid #ef4444; border-radius: 8px; padding: 16px; margin: 16px 0;">'
        f"<strong>Error:</strong> {error}</div>"
        "<p>Please try again with a smaller date range or contact support if the issue persists.</p>"
    )
    text = (
        f"Export Failed\n\n"
        f"Unfortunately, your report {job_name} could not be generated.\n"
        f"Error: {error_message}\n\n"
        f"Please try again with a smaller date range or contact support if the issue persists.\n"
    )
    return EmailNotification(
        to_address=to_address,
        subject=f"Export Failed: {job_name}",
        text=text,
        html=_layout("#ef4444", body),
    )
