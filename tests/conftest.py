"""Shared pytest fixtures for the test plan extractor test suite.

Provides reusable fixtures for:
- Sample structured, narrative and FAQ documents
- A tiny hand-built PDF factory (one text line per page)
- A scripted LLM invoker that replays canned replies
"""

from __future__ import annotations

import textwrap
from typing import Callable, Union

import pytest


# ---------------------------------------------------------------------------
# Sample documents
# ---------------------------------------------------------------------------

@pytest.fixture
def structured_text() -> str:
    """Tagged requirement/design document with three requirements and two components."""
    return textwrap.dedent("""\
        REQUIREMENT REQ-001: User login
        Users sign in with email and password.
        Priority: High
        Category: Security
        Acceptance Criteria:
        - Valid credentials open a session
        - Invalid credentials show an error message
        Dependencies: REQ-002

        REQUIREMENT REQ-002: Password reset
        Users can reset a forgotten password by email.
        Priority: medium
        Acceptance Criteria:
        1. Reset link expires after 24 hours
        2) Reset link can be used once

        REQ-003 - Audit trail
        All sign-in attempts are logged.
        Category: Operational

        DESIGN COMP-001: Auth Service
        Handles authentication and session tokens.
        Type: Service
        Interfaces:
        - POST /login
        - POST /logout
        Dependencies:
        - User Database
        Business Rules:
        - Lock account after five failed attempts

        COMPONENT: Login Page
        Type: UI
        Interfaces: login form; error banner
    """)


@pytest.fixture
def narrative_text() -> str:
    """Press release with key features, an integration, a metric and two Q/A blocks."""
    return textwrap.dedent("""\
        FOR IMMEDIATE RELEASE

        Acme announces SmartCart, a shopping assistant for busy families.

        Key Features:
        - Smart Lists: Core list builder that predicts what you need next
        - Price Alerts: Sends a notification when prices drop
        - Recipe Sync: Optional import of ingredients from saved recipes

        SmartCart works seamlessly with Google Calendar and Apple Reminders.
        The mobile app reaches 95% accuracy in predicting weekly staples.

        - Household sharing keeps every family member on the same list

        Q: How does SmartCart protect my data?
        A: All data is encrypted at rest and SmartCart never sells personal information to third parties.

        Q: What happens if I lose my phone?
        A: You can sign in on a new device and SmartCart will restore your lists automatically from the cloud.
    """)


# ---------------------------------------------------------------------------
# PDF factory
# ---------------------------------------------------------------------------

def _pdf_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_pdf(pages: list[str]) -> bytes:
    """Build a minimal PDF with one line of Helvetica text per page.

    Putting each line on its own page keeps line breaks independent of the
    text extractor's layout analysis: pages are joined with newlines.
    """
    objects: list[bytes] = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        (
            "<< /Type /Pages /Kids ["
            + " ".join(f"{4 + 2 * i} 0 R" for i in range(len(pages)))
            + f"] /Count {len(pages)} >>"
        ).encode("latin-1"),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    for index, line in enumerate(pages):
        stream = f"BT /F1 12 Tf 72 720 Td ({_pdf_escape(line)}) Tj ET".encode("latin-1")
        objects.append(
            (
                "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
                "/Resources << /Font << /F1 3 0 R >> >> "
                f"/Contents {5 + 2 * index} 0 R >>"
            ).encode("latin-1")
        )
        objects.append(
            f"<< /Length {len(stream)} >>\nstream\n".encode("latin-1") + stream + b"\nendstream"
        )

    out = bytearray(b"%PDF-1.4\n")
    offsets: list[int] = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode("latin-1") + body + b"\nendobj\n"

    xref_offset = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode("latin-1")
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode("latin-1")
    out += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n"
        f"startxref\n{xref_offset}\n%%EOF\n"
    ).encode("latin-1")
    return bytes(out)


@pytest.fixture
def make_pdf() -> Callable[[list[str]], bytes]:
    """Factory fixture: ``make_pdf(["line one", "line two"])`` -> PDF bytes."""
    return build_pdf


# ---------------------------------------------------------------------------
# Scripted LLM invoker
# ---------------------------------------------------------------------------

class ScriptedInvoker:
    """LLM invoker that replays canned replies (or raises canned exceptions)."""

    def __init__(self, replies: list[Union[str, Exception]]) -> None:
        self.replies = list(replies)
        self.prompts: list[str] = []

    async def invoke(self, prompt: str) -> str:
        self.prompts.append(prompt)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def scripted_invoker() -> Callable[..., ScriptedInvoker]:
    """Factory fixture: ``scripted_invoker("bad", "[...]")``."""
    def _make(*replies: Union[str, Exception]) -> ScriptedInvoker:
        return ScriptedInvoker(list(replies))
    return _make
