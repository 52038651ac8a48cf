from __future__ import annotations  # Styled PDF rendering for interview profiles

from datetime import datetime
from pathlib import Path
from typing import Any, List, Sequence, Tuple

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from agents.types import InterviewProfile, Turn
from storage.candidates import CandidateRecord
from storage.interviews import InterviewSession

DEJAVU_SANS = Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf")  # System font
DEJAVU_SANS_BOLD = Path("/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf")  # System font

ACCENT = (45, 115, 245)  # Palette accent
TEXT = (34, 34, 34)  # Primary text color
MUTED = (100, 100, 100)  # Secondary text color
RULE = (230, 230, 230)  # Divider color
SOFT_ACCENT_BG = (243, 248, 255)  # Highlight background
GOOD = (30, 140, 80)  # Correct verdict
BAD = (200, 60, 60)  # Incorrect verdict


def _parse_datetime(value: str | None) -> datetime | None:  # Parse ISO timestamp, None when absent or malformed
    if not value:
        return None
    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def _format_datetime(value: datetime | None) -> str:  # Format timestamp for display
    if not value:
        return "-"
    return value.strftime("%d %b %Y, %I:%M %p").lstrip("0").replace(" 0", " ")


def _effective_width(pdf: FPDF) -> float:  # Compute effective page width
    return float(pdf.w) - float(pdf.l_margin) - float(pdf.r_margin)


class ProfilePDF(FPDF):  # PDF with custom header/footer styling
    def __init__(self, *args, accent: Tuple[int, int, int] = ACCENT, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.accent = accent
        self.header_title = "Interview Profile"
        self.font_regular = "Helvetica"
        self.font_bold = "Helvetica"
        self.supports_unicode = False
        if DEJAVU_SANS.exists() and DEJAVU_SANS_BOLD.exists():
            self.add_font("DejaVu", "", str(DEJAVU_SANS))
            self.add_font("DejaVu", "B", str(DEJAVU_SANS_BOLD))
            self.font_regular = "DejaVu"
            self.font_bold = "DejaVu"
            self.supports_unicode = True

    def clean(self, text: Any) -> str:  # Sanitize text for non-unicode fonts
        value = "" if text is None else str(text)
        if self.supports_unicode:
            return value
        return value.replace("•", "-").encode("latin-1", "ignore").decode("latin-1")

    @property
    def bullet(self) -> str:
        return "•" if self.supports_unicode else "-"

    def header(self) -> None:  # Render header banner
        usable = _effective_width(self)
        if self.page_no() == 1:
            self.set_fill_color(*self.accent)
            self.rect(0, 0, self.w, 20, style="F")
            self.set_text_color(255, 255, 255)
            self.set_font(self.font_bold, "B", 16)
            self.set_xy(self.l_margin, 6)
            self.multi_cell(usable, 8, self.clean(self.header_title))
            self.set_text_color(*TEXT)
            self.ln(4)
        else:
            self.set_text_color(80, 80, 80)
            self.set_xy(self.l_margin, 8)
            self.set_font(self.font_bold, "B", 12)
            self.multi_cell(usable, 6, self.clean(self.header_title))
            mark = self.get_y()
            self.set_draw_color(*self.accent)
            self.set_line_width(0.4)
            self.line(self.l_margin, mark + 1, self.w - self.r_margin, mark + 1)
            self.set_text_color(*TEXT)
            self.ln(4)

    def footer(self) -> None:  # Render footer with pagination
        self.set_y(-12)
        self.set_draw_color(*RULE)
        self.set_line_width(0.2)
        self.line(self.l_margin, self.get_y(), self.w - self.r_margin, self.get_y())
        self.set_text_color(120, 120, 120)
        self.set_font(self.font_regular, "", 9)
        self.cell(0, 10, f"Page {self.page_no()}/{{nb}}", align="R")


def _section_title(pdf: ProfilePDF, title: str) -> None:  # Render styled section title
    pdf.set_text_color(*TEXT)
    pdf.set_x(pdf.l_margin)
    pdf.set_font(pdf.font_bold, "B", 13)
    pdf.cell(0, 9, pdf.clean(title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_draw_color(*RULE)
    pdf.set_line_width(0.2)
    y = pdf.get_y()
    pdf.line(pdf.l_margin, y, pdf.l_margin + _effective_width(pdf), y)
    pdf.ln(2)


def _meta_block(pdf: ProfilePDF, rows: List[Tuple[str, str]]) -> None:  # Draw two-column metadata
    col = _effective_width(pdf) / 2.0
    line = 6
    for idx in range(0, len(rows), 2):
        left = rows[idx]
        right = rows[idx + 1] if idx + 1 < len(rows) else ("", "")
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*MUTED)
        pdf.set_font(pdf.font_regular, "", 10)
        pdf.cell(col, line, pdf.clean(left[0]), new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.cell(col, line, pdf.clean(right[0]), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_text_color(*TEXT)
        pdf.set_font(pdf.font_bold, "B", 11)
        pdf.cell(col, line, pdf.clean(left[1]), new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.cell(col, line, pdf.clean(right[1]), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(2)


def _score_banner(pdf: ProfilePDF, score: float) -> None:  # Highlight the overall score
    top = pdf.get_y()
    width = _effective_width(pdf)
    pdf.set_fill_color(*SOFT_ACCENT_BG)
    pdf.rect(pdf.l_margin, top, width, 16, style="F")
    pdf.set_xy(pdf.l_margin + 6, top + 5)
    pdf.set_text_color(*MUTED)
    pdf.set_font(pdf.font_regular, "", 10)
    pdf.cell(width / 2, 6, "Performance Score")
    pdf.set_text_color(*pdf.accent)
    pdf.set_font(pdf.font_bold, "B", 14)
    pdf.cell(width / 2 - 12, 6, f"{score:.0f}/100", align="R")
    pdf.set_xy(pdf.l_margin, top + 20)
    pdf.set_text_color(*TEXT)


def _bullets(pdf: ProfilePDF, items: Sequence[str], empty: str) -> None:  # Render a bullet list
    pdf.set_x(pdf.l_margin)
    if not items:
        pdf.set_text_color(*MUTED)
        pdf.set_font(pdf.font_regular, "", 10)
        pdf.multi_cell(_effective_width(pdf), 6, pdf.clean(empty))
        pdf.set_text_color(*TEXT)
        pdf.ln(2)
        return
    pdf.set_font(pdf.font_regular, "", 11)
    for item in items:
        pdf.set_x(pdf.l_margin)
        pdf.multi_cell(_effective_width(pdf), 6, pdf.clean(f"{pdf.bullet} {item}"))
    pdf.ln(2)


def _render_turns(pdf: ProfilePDF, turns: Sequence[Turn]) -> None:  # Render graded Q&A rows
    width = _effective_width(pdf)
    if not turns:
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*MUTED)
        pdf.set_font(pdf.font_regular, "", 10)
        pdf.multi_cell(width, 6, "No graded questions recorded for this interview.")
        pdf.set_text_color(*TEXT)
        return
    line = 5.5
    for index, turn in enumerate(turns, start=1):
        if pdf.get_y() + 30 > pdf.page_break_trigger:
            pdf.add_page()
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*pdf.accent)
        pdf.set_font(pdf.font_bold, "B", 10)
        pdf.multi_cell(width, line, pdf.clean(f"Q{index}. {turn.content}"))
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(60, 60, 60)
        pdf.set_font(pdf.font_regular, "", 10)
        pdf.multi_cell(width, line, pdf.clean(f"A: {turn.candidate_answer or '-'}"))
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*(GOOD if turn.correct else BAD))
        pdf.set_font(pdf.font_regular, "", 9)
        verdict = "Correct" if turn.correct else "Incorrect"
        meta = f"{verdict} | {turn.section or 'Unlabeled'} | Difficulty {turn.difficulty_level} | {turn.ai_feedback}"
        pdf.multi_cell(width, line, pdf.clean(meta))
        pdf.set_draw_color(*RULE)
        pdf.set_line_width(0.2)
        y = pdf.get_y() + 1
        pdf.line(pdf.l_margin, y, pdf.l_margin + width, y)
        pdf.set_y(y + 3)
    pdf.set_text_color(*TEXT)


def generate_profile_pdf(  # Build PDF payload for an interview profile
    session: InterviewSession,
    candidate: CandidateRecord,
    profile: InterviewProfile,
    turns: Sequence[Turn],
) -> bytes:
    pdf = ProfilePDF()
    pdf.alias_nb_pages()
    job_area = candidate.resume_profile.job_area or "Interview"
    pdf.header_title = f"{job_area} - {candidate.full_name} - Interview Profile"
    pdf.set_margins(15, 22, 15)
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    _section_title(pdf, "Session Overview")
    analytics = profile.analytics
    _meta_block(
        pdf,
        [
            ("Interview ID", session.interview_id),
            ("Candidate", candidate.full_name),
            ("Scheduled", _format_datetime(_parse_datetime(session.scheduled_at))),
            ("Attempted", _format_datetime(_parse_datetime(session.attempted_at))),
            ("Duration", f"{session.duration_min} min"),
            ("Completed In", f"{session.completion_min or 0:.1f} min"),
            ("Questions", str(analytics.total_questions)),
            ("Correct", f"{analytics.correct_answers}/{analytics.total_questions}"),
            ("Average Difficulty", f"{analytics.average_difficulty:.2f}"),
            ("Modality", session.modality.title()),
        ],
    )
    _score_banner(pdf, profile.performance_score)

    _section_title(pdf, "Recommended Roles")
    _bullets(pdf, profile.recommended_roles, "No roles recommended.")

    _section_title(pdf, "Strengths")
    _bullets(pdf, profile.strengths, "No strengths noted.")

    _section_title(pdf, "Areas to Improve")
    _bullets(pdf, profile.weaknesses, "No weaknesses noted.")

    _section_title(pdf, "Question & Answer Review")
    _render_turns(pdf, turns)

    return bytes(pdf.output())


__all__ = ["generate_profile_pdf"]
