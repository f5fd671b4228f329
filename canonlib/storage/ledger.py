# storage/ledger.py
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, Union

from canonlib.storage.files import read_json, write_json_atomic
from canonlib.storage.models import TokenUsageEntry, utc_now

logger = logging.getLogger(__name__)

DAILY_TOKEN_CAP = 2_000_000

# USD por millón de tokens (input, output). Solo para reportes.
_PRICING_PER_MILLION: dict[str, tuple[float, float]] = {
    "claude":      (1.00, 5.00),
    "gemini":      (0.10, 0.40),
    "gpt-4o-mini": (0.15, 0.60),
}
_DEFAULT_PRICING = _PRICING_PER_MILLION["claude"]

DateLike = Union[date, str, None]


@dataclass
class DailyTokenUsage:
    date:             str
    total_tokens:     int = 0
    total_operations: int = 0
    entries:          list[TokenUsageEntry] = field(default_factory=list)
    cap_reached:      bool = False
    cap_reached_at:   Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "date":            self.date,
            "totalTokens":     self.total_tokens,
            "totalOperations": self.total_operations,
            "entries":         [e.to_dict() for e in self.entries],
            "capReached":      self.cap_reached,
        }
        if self.cap_reached_at:
            data["capReachedAt"] = self.cap_reached_at
        return data

    @classmethod
    def from_dict(cls, data: dict, day: str) -> "DailyTokenUsage":
        return cls(
            date             = data.get("date", day),
            total_tokens     = int(data.get("totalTokens", 0)),
            total_operations = int(data.get("totalOperations", data.get("totalTranslations", 0))),
            entries          = [TokenUsageEntry.from_dict(e) for e in data.get("entries", [])],
            cap_reached      = bool(data.get("capReached", False)),
            cap_reached_at   = data.get("capReachedAt"),
        )


class TokenLedger:
    """
    Acumulador diario de uso de tokens con tope fijo.
    Un documento JSON por día: <directory>/YYYY-MM-DD.json
    """

    def __init__(self, directory: Path, daily_cap: int = DAILY_TOKEN_CAP):
        if daily_cap <= 0:
            raise ValueError("daily_cap debe ser positivo")
        self._directory = Path(directory)
        self._daily_cap = daily_cap

    @property
    def daily_cap(self) -> int:
        return self._daily_cap

    def load(self, day: DateLike = None) -> DailyTokenUsage:
        key = _date_key(day)
        raw = read_json(self._path_for(key))
        if not isinstance(raw, dict):
            return DailyTokenUsage(date=key)
        try:
            return DailyTokenUsage.from_dict(raw, key)
        except (TypeError, ValueError) as e:
            logger.warning("Ledger de %s corrupto, se considera vacío: %s", key, e)
            return DailyTokenUsage(date=key)

    def remaining(self, day: DateLike = None) -> int:
        usage = self.load(day)
        return max(0, self._daily_cap - usage.total_tokens)

    def would_exceed(self, estimated_tokens: int, day: DateLike = None) -> bool:
        return estimated_tokens > self.remaining(day)

    def is_cap_reached(self, day: DateLike = None) -> bool:
        usage = self.load(day)
        return usage.cap_reached or usage.total_tokens >= self._daily_cap

    def record(
        self,
        canonical_id:    str,
        source_language: str,
        target_language: str,
        input_tokens:    int,
        output_tokens:   int,
        model:           str,
        operation:       str = "translation",
        day:             DateLike = None,
    ) -> DailyTokenUsage:
        """Añade una entrada al día y marca capReached si se cruza el tope."""
        usage = self.load(day)
        entry = TokenUsageEntry(
            timestamp       = utc_now(),
            operation       = operation,
            canonical_id    = canonical_id,
            source_language = source_language,
            target_language = target_language,
            input_tokens    = int(input_tokens),
            output_tokens   = int(output_tokens),
            model           = model,
        )

        usage.entries.append(entry)
        usage.total_tokens     += entry.total_tokens
        usage.total_operations += 1

        if not usage.cap_reached and usage.total_tokens >= self._daily_cap:
            usage.cap_reached    = True
            usage.cap_reached_at = entry.timestamp
            logger.warning("Tope diario de tokens alcanzado (%d)", self._daily_cap)

        write_json_atomic(self._path_for(usage.date), usage.to_dict())
        logger.debug(
            "Uso registrado: %d tokens (%s): total del día %d",
            entry.total_tokens, model, usage.total_tokens,
        )
        return usage

    def summary(self, start: DateLike, end: DateLike) -> list[DailyTokenUsage]:
        """Un DailyTokenUsage por día del rango, ambos extremos incluidos."""
        current = _as_date(start)
        last    = _as_date(end)
        days: list[DailyTokenUsage] = []
        while current <= last:
            days.append(self.load(current))
            current += timedelta(days=1)
        return days

    def create_report(self, usage: DailyTokenUsage) -> str:
        """Reporte markdown del día (formato pensado para summaries de CI)."""
        remaining  = self._daily_cap - usage.total_tokens
        percentage = usage.total_tokens / self._daily_cap * 100
        cost       = sum(
            estimate_cost(e.model, e.input_tokens, e.output_tokens) for e in usage.entries
        )

        lines = [
            f"## Token Usage Report - {usage.date}",
            "",
            f"- **Total Tokens Used**: {usage.total_tokens:,} / {self._daily_cap:,} ({percentage:.1f}%)",
            f"- **Remaining Tokens**: {remaining:,}",
            f"- **Operations Processed**: {usage.total_operations}",
            f"- **Estimated Cost**: ${cost:.4f}",
        ]
        if usage.cap_reached:
            lines.append(f"- **Daily Cap Reached**: {usage.cap_reached_at}")

        if usage.entries:
            lines += [
                "",
                "### Recent Operations",
                "",
                "| Time | Operation | Canonical ID | Tokens |",
                "|------|-----------|--------------|--------|",
            ]
            for entry in usage.entries[-10:]:
                lines.append(
                    f"| {entry.timestamp} | {entry.operation} | {entry.canonical_id} | {entry.total_tokens} |"
                )

        return "\n".join(lines) + "\n"

    def _path_for(self, key: str) -> Path:
        return self._directory / f"{key}.json"


def estimate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    rate_in, rate_out = _PRICING_PER_MILLION.get(model, _DEFAULT_PRICING)
    return (input_tokens * rate_in + output_tokens * rate_out) / 1_000_000


def _as_date(day: DateLike) -> date:
    if day is None:
        return datetime.now(timezone.utc).date()
    if isinstance(day, str):
        return date.fromisoformat(day)
    return day


def _date_key(day: DateLike) -> str:
    return _as_date(day).isoformat()
