"""Request, mirror and outcome models for the resolution pipeline."""

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ebook_resolver.utils.filename import content_type_for


class DeclaredSource(str, Enum):
    """Where a catalog entry came from."""

    AGGREGATOR = "aggregator"
    TRUSTED_ARCHIVE = "trustedArchive"


# Catalog names used by the search layer, mapped onto the two source classes.
_SOURCE_ALIASES: dict[str, DeclaredSource] = {
    "aggregator": DeclaredSource.AGGREGATOR,
    "libgen": DeclaredSource.AGGREGATOR,
    "trustedarchive": DeclaredSource.TRUSTED_ARCHIVE,
    "trusted_archive": DeclaredSource.TRUSTED_ARCHIVE,
    "gutenberg": DeclaredSource.TRUSTED_ARCHIVE,
    "openlibrary": DeclaredSource.TRUSTED_ARCHIVE,
    "archive": DeclaredSource.TRUSTED_ARCHIVE,
    "standardebooks": DeclaredSource.TRUSTED_ARCHIVE,
}


def parse_declared_source(value: str | DeclaredSource) -> DeclaredSource:
    """Map a catalog name or enum value onto a DeclaredSource."""
    if isinstance(value, DeclaredSource):
        return value
    key = value.strip().lower()
    if key not in _SOURCE_ALIASES:
        raise ValueError(f"Unknown declared source: {value!r}")
    return _SOURCE_ALIASES[key]


class ResolutionHints(BaseModel):
    """Optional hints supplied alongside a request."""

    model_config = ConfigDict(frozen=True)

    file_hash: str | None = None
    mirror_base_url: str | None = None

    @field_validator("file_hash")
    @classmethod
    def _normalize_hash(cls, v: str | None) -> str | None:
        return v.strip().lower() if v else None


class ResolutionRequest(BaseModel):
    """One download or send-to-Kindle attempt."""

    model_config = ConfigDict(frozen=True)

    entry_url: str
    declared_source: DeclaredSource = DeclaredSource.AGGREGATOR
    hints: ResolutionHints = Field(default_factory=ResolutionHints)

    @field_validator("declared_source", mode="before")
    @classmethod
    def _parse_source(cls, v: Any) -> DeclaredSource:
        return parse_declared_source(v)

    @field_validator("entry_url")
    @classmethod
    def _require_url(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("entry_url must not be empty")
        return v

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ResolutionRequest":
        """Build a request from the JSON body sent by a download handler."""
        return cls(
            entry_url=payload.get("entryUrl", ""),
            declared_source=payload.get("declaredSource", DeclaredSource.AGGREGATOR),
            hints=ResolutionHints(
                file_hash=payload.get("fileHash"),
                mirror_base_url=payload.get("mirrorBaseUrl"),
            ),
        )


class MirrorKind(str, Enum):
    """How a mirror is reached."""

    DIRECT_LINK_PATTERN = "directLinkPattern"
    INTERMEDIATE_REDIRECT_PAGE = "intermediateRedirectPage"
    AD_GATED_PAGE = "adGatedPage"


class MirrorCandidate(BaseModel):
    """A mirror found on an entry page, ready to be tried."""

    model_config = ConfigDict(frozen=True)

    kind: MirrorKind
    locator_pattern: str
    requires_browser: bool
    priority: int
    url: str
    family: str = ""


class FailureReason(str, Enum):
    """Why a resolution did not produce a file."""

    NO_MIRROR_FOUND = "NoMirrorFound"
    ALL_MIRRORS_EXHAUSTED = "AllMirrorsExhausted"
    TIMEOUT = "Timeout"
    BOT_CHALLENGE_UNRESOLVED = "BotChallengeUnresolved"
    NETWORK_ERROR = "NetworkError"


class ResolvedUrl(BaseModel):
    """A directly fetchable file URL."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["url"] = "url"
    url: str

    @property
    def success(self) -> bool:
        return True

    def to_payload(self) -> dict[str, Any]:
        return {"url": self.url}


class ResolvedBytes(BaseModel):
    """File content already downloaded during resolution."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["bytes"] = "bytes"
    data: bytes = Field(repr=False)
    suggested_name: str

    @property
    def success(self) -> bool:
        return True

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def content_type(self) -> str:
        suffix = self.suggested_name.rsplit(".", 1)[-1] if "." in self.suggested_name else ""
        return content_type_for(suffix)

    def to_payload(self) -> dict[str, Any]:
        """Metadata for the downloaded file; the bytes travel separately."""
        return {
            "suggestedName": self.suggested_name,
            "size": self.size,
            "contentType": self.content_type,
        }


class Failed(BaseModel):
    """Resolution failed; ``original_url`` is the manual fallback."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["failed"] = "failed"
    reason: FailureReason
    original_url: str = ""
    message: str = ""

    @property
    def success(self) -> bool:
        return False

    def to_payload(self) -> dict[str, Any]:
        return {
            "errorKind": self.reason.value,
            "originalUrl": self.original_url,
            "message": self.message,
        }


ResolutionOutcome = Annotated[
    Union[ResolvedUrl, ResolvedBytes, Failed],
    Field(discriminator="kind"),
]
