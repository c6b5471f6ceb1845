import time
from contextlib import contextmanager
from typing import Any, Iterator


def _fmt_fields(fields: dict) -> str:
    return "".join(f" {k}={v}" for k, v in fields.items() if v is not None)


@contextmanager
def timed(label: str, **fields: Any) -> Iterator[None]:
    t0 = time.time()
    try:
        yield
    finally:
        dt = int((time.time() - t0) * 1000)
        print(f"[timed] {label}: {dt} ms{_fmt_fields(fields)}")


def warn(label: str, message: str, **fields: Any) -> None:
    print(f"[warn] {label}: {message}{_fmt_fields(fields)}")
