from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

__all__ = [
    "P2PError",
    "P2PErrorCode",
    "ConfigError",
    "WireError",
    "InvalidMagic",
    "TruncatedStream",
    "UnexpectedMessageType",
    "UnknownMessageType",
    "MessageTooLarge",
    "OversizedField",
    "OversizedCollection",
    "MalformedMessage",
    "FrameWriteError",
    "as_error_dict",
]


class P2PErrorCode:
    """
    Canonical string codes for P2P errors.
    Kept stable for logs and cross-process handling.
    """

    GENERIC = "P2P_ERROR"
    CONFIG = "CONFIG_INVALID"
    PROTOCOL_VIOLATION = "PROTOCOL_VIOLATION"
    INVALID_MAGIC = "INVALID_MAGIC"
    TRUNCATED = "TRUNCATED_STREAM"
    UNEXPECTED_TYPE = "UNEXPECTED_MESSAGE_TYPE"
    UNKNOWN_TYPE = "UNKNOWN_MESSAGE_TYPE"
    MESSAGE_TOO_LARGE = "MESSAGE_TOO_LARGE"
    OVERSIZED_FIELD = "OVERSIZED_FIELD"
    OVERSIZED_COLLECTION = "OVERSIZED_COLLECTION"
    MALFORMED = "MALFORMED_MESSAGE"
    WRITE_FAILED = "WRITE_FAILED"


@dataclass
class P2PError(Exception):
    """
    Base class for P2P-layer errors with structured context.

    Attributes:
        message: Human-friendly message.
        code: Stable machine-readable code (see P2PErrorCode).
        retryable: Whether the caller MAY retry the operation later.
        disconnect: Whether the connection should be dropped immediately.
        cause: Underlying exception (not serialized by default).
        details: Extra structured context (msg_type, declared lengths, etc.).
    """

    message: str
    code: str = P2PErrorCode.GENERIC
    retryable: bool = False
    disconnect: bool = False
    cause: Optional[BaseException] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.details, dict) and isinstance(self.details, Mapping):
            self.details = dict(self.details)

    def __str__(self) -> str:
        prefix = f"[{self.code}]"
        extra = ""
        if self.details:
            extra = " " + " ".join(f"{k}={v}" for k, v in self.details.items())
        disc = " disconnect" if self.disconnect else ""
        return f"{prefix} {self.message}{extra}{disc}"

    def to_dict(self, include_cause: bool = False) -> Dict[str, Any]:
        """
        Serialize for logs.
        `include_cause` adds the repr of the underlying cause.
        """
        d = {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
            "disconnect": self.disconnect,
            "details": self.details or {},
        }
        if include_cause and self.cause is not None:
            d["cause"] = repr(self.cause)
        return d

    def with_detail(self, **kwargs: Any) -> "P2PError":
        self.details.update(kwargs)
        return self

    def with_cause(self, exc: BaseException) -> "P2PError":
        self.cause = exc
        return self


@dataclass
class ConfigError(P2PError, ValueError):
    """Invalid wire configuration (limits, magic)."""

    code: str = P2PErrorCode.CONFIG


# ---------------------------------------------------------------------------
# Wire / framing
# ---------------------------------------------------------------------------


@dataclass
class WireError(P2PError):
    """
    Framing or payload violations on a peer stream. A stream that produced one
    of these is no longer aligned on a message boundary, so the owning
    connection must be torn down.
    """

    code: str = P2PErrorCode.PROTOCOL_VIOLATION
    disconnect: bool = True


@dataclass
class InvalidMagic(WireError):
    code: str = P2PErrorCode.INVALID_MAGIC

    @staticmethod
    def mismatch(got: bytes, expected: bytes) -> "InvalidMagic":
        return InvalidMagic(
            message="invalid magic code",
            details={"got": got.hex(), "expected": expected.hex()},
        )


@dataclass
class TruncatedStream(WireError, EOFError):
    """The stream ended before a fixed-width field was complete."""

    code: str = P2PErrorCode.TRUNCATED

    @staticmethod
    def short_read(wanted: int, got: int) -> "TruncatedStream":
        return TruncatedStream(
            message="unexpected end of stream",
            details={"wanted": wanted, "got": got},
        )


@dataclass
class UnexpectedMessageType(WireError):
    code: str = P2PErrorCode.UNEXPECTED_TYPE

    @staticmethod
    def mismatch(got: int, expected: int) -> "UnexpectedMessageType":
        return UnexpectedMessageType(
            message="receive unexpected message type",
            details={"got": got, "expected": expected},
        )


@dataclass
class UnknownMessageType(WireError):
    code: str = P2PErrorCode.UNKNOWN_TYPE

    @staticmethod
    def tag(msg_type: int) -> "UnknownMessageType":
        return UnknownMessageType(
            message="no codec registered for message type",
            details={"msg_type": msg_type},
        )


@dataclass
class MessageTooLarge(WireError):
    code: str = P2PErrorCode.MESSAGE_TOO_LARGE

    @staticmethod
    def declared(length: int, limit: int) -> "MessageTooLarge":
        return MessageTooLarge(
            message="too big message size",
            details={"length": length, "limit": limit},
        )


@dataclass
class OversizedField(WireError):
    code: str = P2PErrorCode.OVERSIZED_FIELD

    @staticmethod
    def declared(name: str, length: int, limit: int) -> "OversizedField":
        return OversizedField(
            message=f"invalid {name} len value",
            details={"field": name, "length": length, "limit": limit},
        )


@dataclass
class OversizedCollection(WireError):
    code: str = P2PErrorCode.OVERSIZED_COLLECTION

    @staticmethod
    def declared(name: str, count: int, limit: int) -> "OversizedCollection":
        return OversizedCollection(
            message=f"invalid {name} count value",
            details={"field": name, "count": count, "limit": limit},
        )


@dataclass
class MalformedMessage(WireError):
    code: str = P2PErrorCode.MALFORMED

    @staticmethod
    def trailing(msg_type: int, remaining: int) -> "MalformedMessage":
        return MalformedMessage(
            message="body not fully consumed",
            details={"msg_type": msg_type, "remaining": remaining},
        )


@dataclass
class FrameWriteError(WireError):
    """
    The stream rejected a write mid-message. `written` is how many bytes of
    the frame write() accepted before the failure. Accepted is not delivered:
    details["stage"] is "flush" when every byte was accepted and the final
    flush failed, "write" otherwise. The peer's view of the stream is
    undefined from here on.
    """

    code: str = P2PErrorCode.WRITE_FAILED
    written: int = 0

    def __post_init__(self) -> None:
        super().__post_init__()
        self.details.setdefault("written", self.written)


def as_error_dict(exc: BaseException, include_cause: bool = False) -> Dict[str, Any]:
    """
    Convert an exception to a structured dict suitable for JSON logs.
    Unknown exceptions are wrapped as a generic P2PError with minimal context.
    """
    if isinstance(exc, P2PError):
        return exc.to_dict(include_cause=include_cause)
    wrapped = P2PError(
        message=str(exc) or exc.__class__.__name__,
        code=P2PErrorCode.GENERIC,
        retryable=False,
        disconnect=True,  # unknown failure at P2P layer → safer to drop
        cause=exc,
    )
    return wrapped.to_dict(include_cause=include_cause)
