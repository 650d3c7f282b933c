"""Flattened CSV report of every unit and interaction."""
from __future__ import annotations

import csv
import io
from datetime import date, datetime
from typing import Callable, Iterable

from .models import AVAILABLE, Project
from .services import format_rate

REPORT_HEADER: tuple[str, ...] = (
    "Project",
    "Location",
    "Unit Number",
    "Unit Type",
    "Base Rate (INR/sqft)",
    "Customer Name",
    "Customer Phone",
    "Offered Rate (INR/sqft)",
    "Enquiry Status",
    "Agent Name",
    "Agent Phone",
    "Interaction Date",
    "Notes",
)

NOT_APPLICABLE = "N/A"
NO_INTERACTIONS_NOTE = "No interactions yet"


def _default_date_format(value: datetime) -> str:
    return f"{value.month}/{value.day}/{value.year}"


def build_report_rows(
    projects: Iterable[Project],
    *,
    format_date: Callable[[datetime], str] = _default_date_format,
) -> list[list[str]]:
    """One row per interaction, or one AVAILABLE row for a unit without any."""

    rows: list[list[str]] = [list(REPORT_HEADER)]
    for project in projects:
        for unit in project.instruments:
            unit_cells = [
                project.name,
                project.location,
                unit.number,
                unit.type.value,
                format_rate(unit.base_rate),
            ]
            if not unit.interactions:
                rows.append(
                    unit_cells
                    + [NOT_APPLICABLE] * 3
                    + [AVAILABLE]
                    + [NOT_APPLICABLE] * 3
                    + [NO_INTERACTIONS_NOTE]
                )
                continue
            for interaction in unit.interactions:
                rows.append(
                    unit_cells
                    + [
                        interaction.customer_name,
                        interaction.customer_phone,
                        format_rate(interaction.offered_rate),
                        interaction.status.value,
                        interaction.agent_name,
                        interaction.agent_phone,
                        format_date(interaction.date),
                        interaction.notes or "",
                    ]
                )
    return rows


def render_report(rows: list[list[str]]) -> str:
    """Join rows into CSV text; cells with commas or quotes are quoted."""

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerows(rows)
    return buffer.getvalue().rstrip("\n")


def report_filename(today: date) -> str:
    return f"EstatePulse_Full_Report_{today.isoformat()}.csv"
