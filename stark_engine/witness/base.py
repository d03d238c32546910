"""Trace table produced by trace generators."""

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from stark_engine.primitives.field import FF, GOLDILOCKS_PRIME


@dataclass(frozen=True)
class TraceTable:
    """Rows of field elements keyed by column name.

    Immutable; the prover reads it, generators build it. Values are canonical
    ints in [0, p).
    """
    columns: Tuple[str, ...]
    rows: Tuple[Tuple[int, ...], ...]

    def __post_init__(self) -> None:
        width = len(self.columns)
        for i, row in enumerate(self.rows):
            if len(row) != width:
                raise ValueError(f"row {i} has {len(row)} values, expected {width}")
            for v in row:
                if not 0 <= v < GOLDILOCKS_PRIME:
                    raise ValueError(f"row {i} holds non-canonical value {v}")

    @classmethod
    def from_rows(cls, columns: Sequence[str], rows: Sequence[Sequence[int]]) -> "TraceTable":
        return cls(
            columns=tuple(columns),
            rows=tuple(tuple(int(v) % GOLDILOCKS_PRIME for v in row) for row in rows),
        )

    @classmethod
    def from_columns(cls, columns: Dict[str, Sequence[int]]) -> "TraceTable":
        names = list(columns)
        lengths = {len(columns[name]) for name in names}
        if len(lengths) > 1:
            raise ValueError(f"columns have different lengths: {sorted(lengths)}")
        rows = list(zip(*(columns[name] for name in names)))
        return cls.from_rows(names, rows)

    @property
    def length(self) -> int:
        return len(self.rows)

    @property
    def width(self) -> int:
        return len(self.columns)

    def column(self, name: str) -> List[int]:
        idx = self.columns.index(name)
        return [row[idx] for row in self.rows]

    def row(self, i: int) -> Dict[str, int]:
        return dict(zip(self.columns, self.rows[i]))

    def to_field_columns(self) -> Dict[str, FF]:
        """Columns as FF arrays over the trace domain."""
        return {name: FF(self.column(name)) for name in self.columns}

    def with_cell(self, row: int, column: str, value: int) -> "TraceTable":
        """Copy with one cell replaced."""
        col = self.columns.index(column)
        rows = [list(r) for r in self.rows]
        rows[row][col] = value % GOLDILOCKS_PRIME
        return TraceTable.from_rows(self.columns, rows)
