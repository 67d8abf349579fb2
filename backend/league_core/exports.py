from __future__ import annotations

import html
from typing import List, Sequence

from .models import Standing

DEFAULT_LEAGUE_NAME = "Liga Elite Zacatecas"
SEPARATOR = "───────────────"
MEDALS = ("🥇", "🥈", "🥉")


def _signed(value: int) -> str:
    return f"+{value}" if value > 0 else str(value)


def standings_whatsapp_text(
    standings: Sequence[Standing],
    category_name: str,
    league_name: str = DEFAULT_LEAGUE_NAME,
) -> str:
    """Shareable plain-text table formatted for WhatsApp (``*bold*`` markup)."""

    lines: List[str] = [
        f"⚽ *{league_name.upper()}* ⚽",
        "📊 *Tabla de Posiciones*",
        f"🏆 Categoría: {category_name}",
        "",
        SEPARATOR,
    ]
    for index, team in enumerate(standings):
        marker = MEDALS[index] if index < len(MEDALS) else f"{index + 1}."
        lines.append(f"{marker} *{team.team_name}*")
        lines.append(
            f"   📍 {team.points} pts | {team.played}PJ | {team.won}G {team.drawn}E {team.lost}P"
        )
        lines.append(f"   ⚽ {team.goals_for}-{team.goals_against} ({_signed(team.goal_difference)})")
        lines.append("")
    lines.append(SEPARATOR)
    lines.append(f"📅 {league_name}")
    return "\n".join(lines)


def standings_html(standings: Sequence[Standing], title: str = "") -> str:
    def table_header(headers: List[str]) -> str:
        return "<tr>" + "".join(f"<th>{header}</th>" for header in headers) + "</tr>"

    def td(value) -> str:
        display = "" if value is None else html.escape(str(value))
        return f"<td>{display}</td>"

    rows = [
        "<table id='standings'>",
        table_header(["#", "Equipo", "PJ", "G", "E", "P", "GF", "GC", "DG", "PTS"]),
    ]
    for index, team in enumerate(standings, start=1):
        rows.append(
            "<tr>"
            + td(team.position or index)
            + td(team.team_name)
            + td(team.played)
            + td(team.won)
            + td(team.drawn)
            + td(team.lost)
            + td(team.goals_for)
            + td(team.goals_against)
            + td(_signed(team.goal_difference))
            + td(team.points)
            + "</tr>"
        )
    rows.append("</table>")

    style = """<style>
            th{
                font-size: 12px;
                border: 1px solid black;
                text-align: center;
                padding: 2px;
            }
            table {border-collapse: collapse;}
            table#standings tr:nth-child(odd) td{background-color: #f2f2f2;}
            td {
                text-align: center;
                font-size: 12px;
                border: 1px solid black;
                padding: 2px;
            }
        </style>"""

    heading = f"<h1>{html.escape(title)}</h1>" if title else ""
    return "<html><head>" + style + "</head><body>" + heading + "".join(rows) + "</body></html>"
