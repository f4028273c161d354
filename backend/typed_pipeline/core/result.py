"""Result — two-case outcome of an extraction step.

Invariants:
    - Exactly one of Success(value) / Failure(envelope) holds; both are frozen
    - No accessor exposes a value without the caller first matching the case
    - and_then / map_success pass a Failure through as the SAME object

Design Decisions:
    - Tagged union of two frozen dataclasses over a class with is_ok flags:
      consumers use `match` / isinstance, the type checker narrows (ADR: mandatory handling)
    - No unwrap(): the only way to a value is through a case match
"""

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")
F = TypeVar("F")


@dataclass(frozen=True, slots=True)
class Success(Generic[T]):
    """Extraction succeeded with a value."""
    value: T


@dataclass(frozen=True, slots=True)
class Failure(Generic[F]):
    """Extraction failed with a pre-built response envelope."""
    envelope: F


Result = Union[Failure[F], Success[T]]


def success(value: T) -> Success[T]:
    return Success(value)


def failure(envelope: F) -> Failure[F]:
    return Failure(envelope)


def and_then(
    result: "Result[F, T]", f: Callable[[T], "Result[F, U]"],
) -> "Result[F, U]":
    """Chain f onto a success; a failure passes through unchanged."""
    match result:
        case Success(value=value):
            return f(value)
        case Failure():
            return result
    raise TypeError(f"Expected Success or Failure, got {type(result).__name__}")


def map_success(
    result: "Result[F, T]", f: Callable[[T], U],
) -> "Result[F, U]":
    """Transform the success value; a failure passes through unchanged."""
    return and_then(result, lambda value: Success(f(value)))
