"""
Header-hardening toggles.

Each toggle is a small immutable option object that knows how to add,
remove, or constrain one family of HTTP response headers. Toggles are
validated when they are built, so a bad option fails at startup rather
than on the first request.
"""

import re
from abc import ABC, abstractmethod
from typing import Annotated, ClassVar, Dict, List, Literal, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)
from starlette.datastructures import MutableHeaders
from starlette.requests import Request


class PolicyConfigurationError(ValueError):
    """Raised when a toggle is built with options it cannot honour."""


def _check_header_text(value: str) -> str:
    if "\r" in value or "\n" in value:
        raise ValueError("header values must not contain line breaks")
    try:
        value.encode("latin-1")
    except UnicodeEncodeError:
        raise ValueError(f"{value!r} is not latin-1 encodable") from None
    return value


# Option text that ends up verbatim in a response header.
HeaderText = Annotated[str, AfterValidator(_check_header_text)]


class HeaderPolicy(BaseModel, ABC):
    """Base class for a single header-hardening toggle."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: ClassVar[str] = ""

    @classmethod
    def build(cls, **options) -> "HeaderPolicy":
        """Validate options and return the toggle, raising PolicyConfigurationError."""
        try:
            return cls(**options)
        except ValidationError as exc:
            raise PolicyConfigurationError(
                f"Invalid options for {cls.__name__}: {exc.errors(include_url=False)}"
            ) from exc

    @abstractmethod
    def apply(self, request: Request, headers: MutableHeaders) -> None:
        """Mutate the outgoing response headers in place."""


class HidePoweredBy(HeaderPolicy):
    """Strip implementation fingerprint headers, or replace them with a decoy."""

    name: ClassVar[str] = "hide-powered-by"
    set_to: Optional[HeaderText] = None

    def apply(self, request: Request, headers: MutableHeaders) -> None:
        del headers["server"]
        if self.set_to:
            headers["X-Powered-By"] = self.set_to
        else:
            del headers["x-powered-by"]


class Frameguard(HeaderPolicy):
    """Control whether the page may be embedded in a frame."""

    name: ClassVar[str] = "frameguard"
    action: Literal["deny", "sameorigin"] = "deny"

    @field_validator("action", mode="before")
    @classmethod
    def normalize_action(cls, v):
        if isinstance(v, str):
            return v.strip().lower().replace("-", "")
        return v

    def apply(self, request: Request, headers: MutableHeaders) -> None:
        headers["X-Frame-Options"] = self.action.upper()


_MSIE_VERSION = re.compile(r"msie\s*(\d+)", re.IGNORECASE)


class XssFilter(HeaderPolicy):
    """
    Ask legacy browsers to block pages when a reflected XSS is detected.

    Internet Explorer before version 9 mishandles the filter, so those
    clients get ``0`` unless ``set_on_old_ie`` is set.
    """

    name: ClassVar[str] = "xss-filter"
    set_on_old_ie: bool = False
    report_uri: Optional[HeaderText] = None

    @property
    def header_value(self) -> str:
        value = "1; mode=block"
        if self.report_uri:
            value += f"; report={self.report_uri}"
        return value

    def apply(self, request: Request, headers: MutableHeaders) -> None:
        value = self.header_value
        if not self.set_on_old_ie:
            match = _MSIE_VERSION.search(request.headers.get("user-agent", ""))
            if match and int(match.group(1)) < 9:
                value = "0"
        headers["X-XSS-Protection"] = value


class NoSniff(HeaderPolicy):
    """Prevent browsers from MIME-sniffing away from the declared content type."""

    name: ClassVar[str] = "no-sniff"

    def apply(self, request: Request, headers: MutableHeaders) -> None:
        headers["X-Content-Type-Options"] = "nosniff"


class IeNoOpen(HeaderPolicy):
    """Keep downloads out of the site's context in Internet Explorer."""

    name: ClassVar[str] = "ie-no-open"

    def apply(self, request: Request, headers: MutableHeaders) -> None:
        headers["X-Download-Options"] = "noopen"


class Hsts(HeaderPolicy):
    """
    Tell browsers to reach the site over HTTPS only.

    Plain-HTTP responses are left untouched unless ``force`` is set.
    """

    name: ClassVar[str] = "hsts"
    max_age: int = Field(default=90 * 24 * 60 * 60, ge=0, strict=True)
    include_subdomains: bool = True
    preload: bool = False
    force: bool = False

    @property
    def header_value(self) -> str:
        value = f"max-age={self.max_age}"
        if self.include_subdomains:
            value += "; includeSubDomains"
        if self.preload:
            value += "; preload"
        return value

    def apply(self, request: Request, headers: MutableHeaders) -> None:
        if self.force or request.url.scheme == "https":
            headers["Strict-Transport-Security"] = self.header_value


class DnsPrefetchControl(HeaderPolicy):
    """Turn browser DNS prefetching off (or explicitly on)."""

    name: ClassVar[str] = "dns-prefetch-control"
    allow: bool = False

    def apply(self, request: Request, headers: MutableHeaders) -> None:
        headers["X-DNS-Prefetch-Control"] = "on" if self.allow else "off"


class NoCache(HeaderPolicy):
    """Disable client and proxy caching of every response."""

    name: ClassVar[str] = "no-cache"
    no_etag: bool = False

    def apply(self, request: Request, headers: MutableHeaders) -> None:
        headers["Surrogate-Control"] = "no-store"
        headers["Cache-Control"] = "no-store, no-cache, must-revalidate, proxy-revalidate"
        headers["Pragma"] = "no-cache"
        headers["Expires"] = "0"
        if self.no_etag:
            del headers["etag"]


_CSP_KEYWORDS = {"self", "none", "unsafe-inline", "unsafe-eval", "strict-dynamic"}


def _kebab_case(name: str) -> str:
    name = re.sub(r"(?<=[a-z0-9])([A-Z])", r"-\1", name)
    return name.replace("_", "-").lower()


class ContentSecurityPolicy(HeaderPolicy):
    """
    Declare which origins may supply content for the page.

    ``directives`` maps directive names to source lists, e.g.
    ``{"defaultSrc": ["'self'"], "scriptSrc": ["'self'", "trusted-cdn.com"]}``.
    Names may be camelCase, snake_case or kebab-case and are emitted in
    kebab-case in insertion order.
    """

    name: ClassVar[str] = "content-security-policy"
    directives: Dict[HeaderText, List[HeaderText]]
    report_only: bool = False

    @field_validator("directives")
    @classmethod
    def validate_directives(cls, v: Dict[str, List[str]]) -> Dict[str, List[str]]:
        if not v:
            raise ValueError("at least one directive is required")
        normalized: Dict[str, List[str]] = {}
        for directive, sources in v.items():
            key = _kebab_case(directive.strip())
            if not key:
                raise ValueError("directive names must not be empty")
            if key in normalized:
                raise ValueError(f"directive {key} is given more than once")
            for source in sources:
                if ";" in source or "," in source:
                    raise ValueError(f"{key} source {source!r} contains a separator")
                if source.lower() in _CSP_KEYWORDS:
                    raise ValueError(f"{key} keyword {source!r} must be quoted")
            normalized[key] = list(sources)
        return normalized

    @property
    def header_name(self) -> str:
        if self.report_only:
            return "Content-Security-Policy-Report-Only"
        return "Content-Security-Policy"

    @property
    def header_value(self) -> str:
        return "; ".join(
            " ".join([directive, *sources]) if sources else directive
            for directive, sources in self.directives.items()
        )

    def apply(self, request: Request, headers: MutableHeaders) -> None:
        headers[self.header_name] = self.header_value
