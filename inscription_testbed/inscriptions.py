"""Inscription request and receipt types.

Content is never validated locally: the custodial signer is the only party
that decides whether a body is acceptable for the chosen MIME type.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence

DEFAULT_CONTENT = "Hello World"


class ContentType(Enum):
    TEXT = "text"
    JSON = "json"


@dataclass(frozen=True)
class InscriptionType:
    """One row of the content-type table offered to the user."""

    content_type: ContentType
    label: str
    mime_type: str

    @property
    def value(self) -> str:
        return self.content_type.value


INSCRIPTION_TYPES: tuple[InscriptionType, ...] = (
    InscriptionType(ContentType.TEXT, "Text", "text/plain;charset=utf-8"),
    InscriptionType(ContentType.JSON, "JSON", "application/json;charset=utf-8"),
)


class UnknownContentTypeError(ValueError):
    """Raised when a content type does not index the inscription type table."""


def mime_type_for(content_type: ContentType | int | str) -> str:
    """Return the MIME string for a content type, table index, or value key."""

    return lookup_inscription_type(content_type).mime_type


def lookup_inscription_type(content_type: ContentType | int | str) -> InscriptionType:
    if isinstance(content_type, ContentType):
        for entry in INSCRIPTION_TYPES:
            if entry.content_type is content_type:
                return entry
    elif isinstance(content_type, int) and not isinstance(content_type, bool):
        if 0 <= content_type < len(INSCRIPTION_TYPES):
            return INSCRIPTION_TYPES[content_type]
    elif isinstance(content_type, str):
        for entry in INSCRIPTION_TYPES:
            if entry.value == content_type.strip().lower():
                return entry
    raise UnknownContentTypeError(f"Unknown inscription content type: {content_type!r}")


@dataclass(frozen=True)
class InscriptionRequest:
    """User input consumed by a single inscription submission."""

    content_type: ContentType | int
    content: str
    recipient: str | None = None

    @property
    def mime_type(self) -> str:
        return mime_type_for(self.content_type)


@dataclass(frozen=True)
class InscriptionReceipt:
    """Result of a successful submission: the commit/reveal transaction pair."""

    commit_txid: str
    reveal_txid: str
    mime_type: str
    content_length: int

    @classmethod
    def from_signer_result(
        cls, result: Any, *, mime_type: str, content: str
    ) -> "InscriptionReceipt":
        """Build a receipt from the signer's ``[commit_txid, reveal_txid]`` reply."""

        if isinstance(result, dict):
            commit = result.get("commit_txid") or result.get("commit")
            reveal = result.get("reveal_txid") or result.get("reveal")
        elif isinstance(result, Sequence) and not isinstance(result, str) and len(result) == 2:
            commit, reveal = result
        else:
            raise ValueError(f"Unexpected inscription result from signer: {result!r}")
        if not commit or not reveal:
            raise ValueError(f"Signer returned an incomplete inscription result: {result!r}")
        return cls(
            commit_txid=str(commit),
            reveal_txid=str(reveal),
            mime_type=mime_type,
            content_length=len(content.encode("utf-8")),
        )

    def summary(self) -> dict[str, Any]:
        return {
            "commit_txid": self.commit_txid,
            "reveal_txid": self.reveal_txid,
            "mime_type": self.mime_type,
            "content_length": self.content_length,
        }


@dataclass
class InscriptionForm:
    """Mutable input fields backing the inscription controls."""

    recipient: str = ""
    content: str = DEFAULT_CONTENT
    content_type: int = 0

    def set_recipient(self, value: str) -> None:
        self.recipient = value

    def set_content(self, value: str) -> None:
        self.content = value

    def set_content_type(self, value: str) -> None:
        """Select a content type by its value key (``"text"`` or ``"json"``)."""

        values = [entry.value for entry in INSCRIPTION_TYPES]
        try:
            self.content_type = values.index(value)
        except ValueError as exc:
            raise UnknownContentTypeError(f"Unknown inscription content type: {value!r}") from exc

    @property
    def selected_type(self) -> InscriptionType:
        return INSCRIPTION_TYPES[self.content_type]

    def to_request(self) -> InscriptionRequest:
        return InscriptionRequest(
            content_type=self.content_type,
            content=self.content,
            recipient=self.recipient.strip() or None,
        )
