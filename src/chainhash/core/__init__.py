from .maps import (
    DEFAULT_INITIAL_CAPACITY,
    DEFAULT_LOAD_FACTOR,
    HashTable,
    RehashSink,
    TypedHashTable,
    collect_bucket_heatmap,
    collect_chain_histogram,
    verify_table,
)

__all__ = [
    "DEFAULT_INITIAL_CAPACITY",
    "DEFAULT_LOAD_FACTOR",
    "HashTable",
    "RehashSink",
    "TypedHashTable",
    "collect_bucket_heatmap",
    "collect_chain_histogram",
    "verify_table",
]
