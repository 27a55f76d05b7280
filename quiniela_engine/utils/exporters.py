# quiniela_engine/utils/exporters.py
"""
Import/export of matches, tickets and full portfolios.

- CSV tickets: Quiniela, Tipo, P1..Pn, Empates, Prob_11_Plus
- JSON record: metadata, matches, tickets, validation
- Plain-text card listing for printing
- CSV match import (local, visitante, prob_local, prob_empate, prob_visitante, ...)
"""

import io
import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd

from ..config import ENGINE_VERSION, HISTORICAL_DISTRIBUTION, METHODOLOGY
from ..engine.models import Match, Outcome, PortfolioResult, Ticket, TicketKind
from ..exceptions import ExportFormatError, InvalidProbabilitiesError

logger = logging.getLogger(__name__)

Source = Union[str, Path, io.StringIO]

TICKET_ID_COLUMN = "Quiniela"
KIND_COLUMN = "Tipo"
DRAWS_COLUMN = "Empates"
PROBABILITY_COLUMN = "Prob_11_Plus"

MATCH_COLUMNS = ["local", "visitante", "prob_local", "prob_empate", "prob_visitante"]

_SLOT_COLUMN = re.compile(r"^P(\d+)$")


def _read_text(source: Source) -> str:
    """Accept a path, an in-memory buffer or raw CSV/JSON text."""
    if isinstance(source, io.StringIO):
        return source.getvalue()
    if isinstance(source, Path):
        return source.read_text(encoding="utf-8")
    if "\n" not in source:
        try:
            if Path(source).is_file():
                return Path(source).read_text(encoding="utf-8")
        except OSError:
            # name too long for a path: treat as inline text
            pass
    return source


def _read_frame(text: str) -> pd.DataFrame:
    try:
        return pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False)
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as e:
        raise ExportFormatError(f"Unreadable CSV: {e}") from e


# ---------------------------------------------------------------------
# Tickets <-> CSV
# ---------------------------------------------------------------------

def tickets_to_frame(tickets: Sequence[Ticket]) -> pd.DataFrame:
    num_slots = max((len(t) for t in tickets), default=0)
    columns = [TICKET_ID_COLUMN, KIND_COLUMN] + [f"P{i + 1}" for i in range(num_slots)]
    columns += [DRAWS_COLUMN, PROBABILITY_COLUMN]

    rows = []
    for ticket in tickets:
        row: Dict[str, Any] = {
            TICKET_ID_COLUMN: ticket.ticket_id,
            KIND_COLUMN: ticket.kind.value,
        }
        for i, symbol in enumerate(ticket.symbols()):
            row[f"P{i + 1}"] = symbol
        row[DRAWS_COLUMN] = ticket.draw_count
        row[PROBABILITY_COLUMN] = f"{(ticket.hit_probability or 0.0) * 100:.2f}"
        rows.append(row)

    return pd.DataFrame(rows, columns=columns)


def tickets_to_csv(tickets: Sequence[Ticket], path: Optional[Union[str, Path]] = None) -> str:
    """Render tickets as CSV text, also writing it to ``path`` when given."""
    content = tickets_to_frame(tickets).to_csv(index=False)
    if path is not None:
        Path(path).write_text(content, encoding="utf-8")
        logger.info(f"[EXPORT] Wrote {len(tickets)} tickets to {path}")
    return content


def tickets_from_csv(source: Source) -> List[Ticket]:
    """
    Rebuild tickets from a CSV written by ``tickets_to_csv``.

    Raises:
        ExportFormatError: On missing columns or unknown outcome symbols
    """
    df = _read_frame(_read_text(source))

    missing = [c for c in (TICKET_ID_COLUMN, KIND_COLUMN) if c not in df.columns]
    slot_columns = sorted(
        (c for c in df.columns if _SLOT_COLUMN.match(c)),
        key=lambda c: int(_SLOT_COLUMN.match(c).group(1))
    )
    if missing or not slot_columns:
        raise ExportFormatError(
            f"Ticket CSV is missing columns: {', '.join(missing) or 'P1..Pn'}"
        )

    tickets: List[Ticket] = []
    for row_number, row in enumerate(df.to_dict(orient="records"), start=1):
        try:
            outcomes = tuple(
                Outcome.from_symbol(row[c]) for c in slot_columns if str(row[c]).strip()
            )
            kind = TicketKind(str(row[KIND_COLUMN]).strip())
        except ValueError as e:
            raise ExportFormatError(f"Invalid ticket row: {e}", row=row_number) from e

        probability = None
        raw_probability = str(row.get(PROBABILITY_COLUMN, "")).strip()
        if raw_probability:
            try:
                probability = float(raw_probability) / 100
            except ValueError as e:
                raise ExportFormatError(
                    f"Invalid {PROBABILITY_COLUMN} value '{raw_probability}'", row=row_number
                ) from e

        tickets.append(Ticket(
            ticket_id=str(row[TICKET_ID_COLUMN]).strip(),
            kind=kind,
            outcomes=outcomes,
            hit_probability=probability,
        ))

    logger.info(f"[IMPORT] Read {len(tickets)} tickets from CSV")
    return tickets


# ---------------------------------------------------------------------
# Portfolio <-> JSON
# ---------------------------------------------------------------------

def portfolio_to_record(result: PortfolioResult) -> Dict[str, Any]:
    data = result.to_dict()
    return {
        "metadata": {
            "generated_at": result.generated_at,
            "total_tickets": len(result.tickets),
            "methodology": METHODOLOGY,
            "engine_version": ENGINE_VERSION,
            "historical_distribution": HISTORICAL_DISTRIBUTION,
            "seed": result.seed,
            "status": result.status.value,
            "generation_warnings": list(result.generation_warnings),
            "joint_hit_probability": data["metadata"]["joint_hit_probability"],
        },
        "matches": [m.to_dict() for m in result.matches],
        "classified_matches": data["classified_matches"],
        "tickets": data["tickets"],
        "validation": data["validation"],
    }


def portfolio_to_json(result: PortfolioResult, indent: int = 2) -> str:
    return json.dumps(portfolio_to_record(result), indent=indent, ensure_ascii=False, default=str)


def portfolio_from_json(source: Source) -> List[Ticket]:
    """
    Read the tickets back from a JSON record.

    Raises:
        ExportFormatError: If the record is not valid JSON or has no tickets
    """
    try:
        data = json.loads(_read_text(source))
    except json.JSONDecodeError as e:
        raise ExportFormatError(f"Unreadable JSON record: {e.msg}") from e

    if not isinstance(data, dict) or not isinstance(data.get("tickets"), list):
        raise ExportFormatError("JSON record has no 'tickets' list")

    tickets = []
    for position, item in enumerate(data["tickets"], start=1):
        try:
            tickets.append(Ticket.from_dict(item))
        except (KeyError, TypeError, ValueError) as e:
            raise ExportFormatError(f"Invalid ticket entry: {e}", row=position) from e
    return tickets


# ---------------------------------------------------------------------
# Plain text
# ---------------------------------------------------------------------

def portfolio_to_text(result: PortfolioResult) -> str:
    lines = [
        "QUINIELA PORTFOLIO - GENERATED TICKETS",
        "=" * 50,
        f"Date: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"Total tickets: {len(result.tickets)}",
        f"Methodology: {METHODOLOGY}",
        "",
        "MATCHES:",
    ]
    lines += [
        f"{i + 1:>2}. {m.local} vs {m.visitor}" for i, m in enumerate(result.matches)
    ]
    lines += ["", "TICKETS:"]
    for i, ticket in enumerate(result.tickets):
        probability = (ticket.hit_probability or 0.0) * 100
        lines.append(
            f"Q-{i + 1:>2} ({ticket.kind.value:>8}): {' '.join(ticket.symbols())} "
            f"| E:{ticket.draw_count} | Pr:{probability:.1f}%"
        )
    return "\n".join(lines)


# ---------------------------------------------------------------------
# Match import
# ---------------------------------------------------------------------

def _to_bool(value: Any) -> bool:
    return str(value).strip().lower() in ("true", "1", "yes")


def _to_int(value: Any) -> int:
    try:
        return int(float(str(value).strip()))
    except (ValueError, OverflowError):
        return 0


def matches_from_csv(source: Source) -> List[Match]:
    """
    Read a match card from CSV.

    Lines starting with '#' are skipped and each row's probabilities are
    normalized by their sum. Missing context columns default to false/0.

    Raises:
        ExportFormatError: If a required column is missing
        InvalidProbabilitiesError: If a row's probabilities are unusable
    """
    text = _read_text(source)
    lines = [line for line in text.splitlines() if line.strip() and not line.startswith("#")]
    df = _read_frame("\n".join(lines))
    df.columns = [str(c).strip() for c in df.columns]

    missing = [c for c in MATCH_COLUMNS if c not in df.columns]
    if missing:
        raise ExportFormatError(f"Match CSV is missing columns: {', '.join(missing)}")

    matches: List[Match] = []
    for i, row in enumerate(df.to_dict(orient="records")):
        try:
            raw = [float(str(row[c]).strip()) for c in MATCH_COLUMNS[2:]]
        except ValueError as e:
            raise InvalidProbabilitiesError(
                f"Match {i + 1}: unparseable probability ({e})", match_index=i
            ) from e

        total = sum(raw)
        if any(p < 0 for p in raw) or not total > 0:
            raise InvalidProbabilitiesError(
                f"Match {i + 1}: probabilities must be non-negative with a positive sum",
                match_index=i
            )

        matches.append(Match(
            local=str(row["local"]).strip(),
            visitor=str(row["visitante"]).strip(),
            p_local=raw[0] / total,
            p_draw=raw[1] / total,
            p_visitor=raw[2] / total,
            is_decider=_to_bool(row.get("es_final", "")),
            form_diff=_to_int(row.get("forma_diferencia", 0)),
            injury_impact=_to_int(row.get("lesiones_impact", 0)),
        ))

    logger.info(f"[IMPORT] Read {len(matches)} matches from CSV")
    return matches
