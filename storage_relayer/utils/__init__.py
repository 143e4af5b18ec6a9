from storage_relayer.utils.encoding import (
    to_bytes,
    to_fixed_bytes,
    to_hex,
    to_int,
    to_quantity,
    to_word,
)

__all__ = [
    "to_bytes",
    "to_fixed_bytes",
    "to_hex",
    "to_int",
    "to_quantity",
    "to_word",
]
