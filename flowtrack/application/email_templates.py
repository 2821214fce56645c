"""
HTML email rendering (Jinja2, autoescaped).
"""
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from flowtrack.application.task_snapshot import MemberStats, TaskSnapshot

TEMPLATES_DIR = Path(__file__).parent.parent / "templates"

NUDGE_SUBJECT = "Your FlowTrack nudge"
REPORT_SUBJECT = "FlowTrack - Daily team report"
REPORT_EMPTY_SUBJECT = "FlowTrack - Daily team report (no team yet)"

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def render_nudge_email(name: str, snapshot: TaskSnapshot, ack_url: str) -> str:
    return _env.get_template("emails/nudge.html").render(
        name=name,
        counts=snapshot.counts,
        snapshot=snapshot,
        ack_url=ack_url,
    )


def render_team_report(report_date: str, members: list[MemberStats]) -> str:
    return _env.get_template("emails/team_report.html").render(
        report_date=report_date,
        members=members,
    )


def render_empty_team_report(report_date: str) -> str:
    return _env.get_template("emails/team_report_empty.html").render(report_date=report_date)
