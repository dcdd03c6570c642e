from __future__ import annotations

import numpy as np

from engine.diagnostics.json_codec import dumps_bytes, dumps_text, loads


def test_dumps_text_handles_numpy_and_non_str_keys() -> None:
    payload = {"tiles": np.array([[1, 2], [3, 4]], dtype=np.int8), 3: "three"}
    decoded = loads(dumps_text(payload))
    assert decoded == {"tiles": [[1, 2], [3, 4]], "3": "three"}


def test_dumps_bytes_sorts_keys_and_sets() -> None:
    raw = dumps_bytes({"b": 1, "a": frozenset({3, 1, 2})}, sort_keys=True)
    assert raw == b'{"a":[1,2,3],"b":1}'


def test_unknown_objects_fall_back_to_str() -> None:
    class Marker:
        def __str__(self) -> str:
            return "marker"

    assert loads(dumps_text({"value": Marker()})) == {"value": "marker"}


def test_pretty_output_is_indented() -> None:
    assert "\n  " in dumps_text({"a": 1}, pretty=True)
