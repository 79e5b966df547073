"""
Option objects and result structures for record streams.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass(frozen=True)
class MarshalOptions:
    """
    JSON encoding options for structured objects.

    Applied by JSON writers when a protobuf message is written; plain values
    only honour ``ensure_ascii`` and ``sort_keys``.

    Attributes:
        use_proto_names: Emit proto field names instead of lowerCamelCase
        use_enum_numbers: Emit enum values as numbers instead of names
        emit_unpopulated: Emit fields that hold their default value
        ensure_ascii: Escape non-ASCII characters
        sort_keys: Sort object keys
    """

    use_proto_names: bool = False
    use_enum_numbers: bool = False
    emit_unpopulated: bool = False
    ensure_ascii: bool = False
    sort_keys: bool = False

    def proto_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``google.protobuf.json_format.MessageToDict``."""
        return {
            "preserving_proto_field_name": self.use_proto_names,
            "use_integers_for_enums": self.use_enum_numbers,
            "always_print_fields_with_no_presence": self.emit_unpopulated,
        }


@dataclass(frozen=True)
class UnmarshalOptions:
    """
    JSON decoding options for structured objects.

    Attributes:
        discard_unknown: Ignore JSON fields the target message does not define
        max_recursion_depth: Nesting limit for protobuf decoding
    """

    discard_unknown: bool = False
    max_recursion_depth: int = 100

    def proto_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``google.protobuf.json_format.ParseDict``."""
        return {
            "ignore_unknown_fields": self.discard_unknown,
            "max_recursion_depth": self.max_recursion_depth,
        }


@dataclass
class SplitStats:
    """
    Outcome of a split operation.

    Attributes:
        parts: Part paths in order
        records: Number of data records copied (CSV header excluded)
        header: CSV header repeated in every part (None for JSON/Proto)
    """

    parts: List[str] = field(default_factory=list)
    records: int = 0
    header: Optional[List[str]] = None

    @property
    def part_count(self) -> int:
        return len(self.parts)

    def __repr__(self) -> str:
        return f"SplitStats(parts={self.part_count}, records={self.records})"


@dataclass
class JoinStats:
    """
    Outcome of a join operation.
    """

    output: str
    parts: int = 0
    records: int = 0
    skipped_headers: int = 0

    def __repr__(self) -> str:
        return (
            f"JoinStats(output={self.output!r}, parts={self.parts}, "
            f"records={self.records})"
        )
