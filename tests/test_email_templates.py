# tests/test_email_templates.py
from datetime import date

from placement_portal.services.email_templates import (
    format_date, format_salary, render_job_posting_email_html, render_job_posting_email_text,
    truncate, unsubscribe_url
)

BASE = "https://placements.college.edu"


def email_data(**overrides):
    data = {
        "to": "asha+jobs@college.edu",
        "student_name": "Asha Rao",
        "job_title": "Backend Developer",
        "company": "Acme Corp",
        "location": "Bengaluru",
        "salary": 1250000,
        "drive_date": "2024-03-15",
        "application_deadline": None,
        "job_description": "d" * 400,
        "unsubscribe_token": "tok.en-1",
    }
    data.update(overrides)
    return data


def test_format_salary():
    assert format_salary(1200000) == "₹12.0 LPA"
    assert format_salary(650000.0) == "₹6.5 LPA"
    assert format_salary("As per industry standards") == "As per industry standards"
    assert format_salary(None) == "Not specified"


def test_format_date():
    assert format_date("2024-03-15") == "Friday, March 15, 2024"
    assert format_date(date(2024, 1, 1)) == "Monday, January 1, 2024"
    assert format_date(None) == "TBD"
    assert format_date("next week") == "next week"


def test_truncate():
    assert truncate("a" * 10, 5) == "aaaaa..."
    assert truncate("short", 200) == "short"
    assert truncate(None, 5) == ""


def test_unsubscribe_url_encodes_email():
    url = unsubscribe_url("asha+jobs@college.edu", "tok.en-1", BASE + "/")

    assert url == f"{BASE}/unsubscribe?token=tok.en-1&email=asha%2Bjobs%40college.edu"


def test_html_email():
    html = render_job_posting_email_html(email_data(), BASE)

    assert "Dear Asha Rao" in html
    assert "<h2>Backend Developer</h2>" in html
    assert "₹12.5 LPA" in html
    assert "Friday, March 15, 2024" in html
    assert "TBD" in html
    assert "d" * 200 + "..." in html
    assert "d" * 201 not in html
    assert "unsubscribe?token=tok.en-1&amp;email=asha%2Bjobs%40college.edu" in html


def test_html_email_escapes_user_content():
    html = render_job_posting_email_html(email_data(job_title="<script>x</script>"), BASE)

    assert "<script>" not in html


def test_text_email():
    text = render_job_posting_email_text(email_data(job_description="Build APIs"), BASE)

    assert "Dear Asha Rao," in text
    assert "- Salary: ₹12.5 LPA" in text
    assert "Job Description:\nBuild APIs" in text
    assert f"Apply now: {BASE}/student" in text
    assert text.endswith(f"To unsubscribe: {BASE}/unsubscribe?token=tok.en-1&email=asha%2Bjobs%40college.edu")


def test_text_email_truncates_at_300():
    text = render_job_posting_email_text(email_data(), BASE)

    assert "d" * 300 + "..." in text
    assert "d" * 301 not in text
