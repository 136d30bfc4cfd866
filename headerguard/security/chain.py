"""
Ordered chain of header-hardening toggles.
The chain is assembled once at startup from Settings and shared by every request.
"""

from typing import Dict, Iterator, List

import structlog
from starlette.datastructures import MutableHeaders
from starlette.requests import Request

from headerguard.core.config import Settings
from headerguard.security.policies import (
    ContentSecurityPolicy,
    DnsPrefetchControl,
    Frameguard,
    HeaderPolicy,
    HidePoweredBy,
    Hsts,
    IeNoOpen,
    NoCache,
    NoSniff,
    XssFilter,
)

logger = structlog.get_logger(__name__)


class PolicyChain:
    """Append-only sequence of toggles, applied in registration order."""

    def __init__(self) -> None:
        self._policies: List[HeaderPolicy] = []

    def use(self, policy: HeaderPolicy) -> "PolicyChain":
        self._policies.append(policy)
        return self

    def apply(self, request: Request, headers: MutableHeaders) -> None:
        for policy in self._policies:
            policy.apply(request, headers)

    def preview(self, request: Request) -> Dict[str, str]:
        """Return the headers the chain would set on an empty response."""
        headers = MutableHeaders()
        self.apply(request, headers)
        return dict(headers.items())

    @property
    def names(self) -> List[str]:
        return [policy.name for policy in self._policies]

    def __iter__(self) -> Iterator[HeaderPolicy]:
        return iter(self._policies)

    def __len__(self) -> int:
        return len(self._policies)


def build_policy_chain(settings: Settings) -> PolicyChain:
    """
    Assemble the hardening toggles from configuration.
    Raises PolicyConfigurationError if any toggle rejects its options.
    """
    chain = (
        PolicyChain()
        .use(HidePoweredBy.build(set_to=settings.HIDE_POWERED_BY_AS))
        .use(Frameguard.build(action=settings.FRAMEGUARD_ACTION))
        .use(XssFilter.build(report_uri=settings.XSS_REPORT_URI))
        .use(NoSniff.build())
        .use(IeNoOpen.build())
    )

    if settings.HSTS_ENABLED:
        chain.use(
            Hsts.build(
                max_age=settings.HSTS_MAX_AGE_SECONDS,
                include_subdomains=settings.HSTS_INCLUDE_SUBDOMAINS,
                preload=settings.HSTS_PRELOAD,
                force=settings.HSTS_FORCE,
            )
        )
    else:
        logger.info("Strict-Transport-Security disabled at the application layer")

    chain.use(DnsPrefetchControl.build(allow=settings.DNS_PREFETCH_ALLOW))
    chain.use(NoCache.build(no_etag=settings.NOCACHE_NO_ETAG))
    chain.use(
        ContentSecurityPolicy.build(
            directives={
                "defaultSrc": settings.CSP_DEFAULT_SRC,
                "scriptSrc": settings.CSP_SCRIPT_SRC,
            },
            report_only=settings.CSP_REPORT_ONLY,
        )
    )
    return chain
