"""Resolution orchestrator: entry page to file URL or file bytes."""

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol

from ebook_resolver.browser.navigator import Navigator
from ebook_resolver.config import AppConfig
from ebook_resolver.extractor.links import LinkSelector, extract_links
from ebook_resolver.fetcher import BaseFetcher, FetchResult, HttpFetcher
from ebook_resolver.mirrors import FILE_LINK_SELECTORS, MirrorRegistry, plan_mirrors
from ebook_resolver.models import (
    DeclaredSource,
    Failed,
    FailureReason,
    MirrorCandidate,
    MirrorKind,
    ResolutionOutcome,
    ResolutionRequest,
    ResolvedBytes,
    ResolvedUrl,
)
from ebook_resolver.utils.url_utils import (
    ipfs_to_gateway,
    is_direct_download_host,
    is_download_url,
    is_excluded_link,
)

logger = logging.getLogger(__name__)


class GateNavigator(Protocol):
    """Anything that can resolve an ad-gated page in a browser."""

    async def navigate(self, url: str) -> ResolutionOutcome: ...


FetcherFactory = Callable[[], BaseFetcher]


def _fetch_failure(result: FetchResult) -> Failed:
    reason = FailureReason.TIMEOUT if result.timed_out else FailureReason.NETWORK_ERROR
    return Failed(reason=reason, original_url=result.url, message=result.error or "fetch failed")


class Orchestrator:
    """Coordinates the resolution pipeline.

    Holds configuration and collaborators only; every :meth:`resolve` call
    creates its own HTTP client and at most one browser session, so calls
    can run concurrently.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        fetcher_factory: FetcherFactory | None = None,
        navigator: GateNavigator | None = None,
    ):
        self.config = config or AppConfig()
        self._fetcher_factory = fetcher_factory or (lambda: HttpFetcher(self.config.fetcher))
        self.navigator = navigator or Navigator(self.config.browser, self.config.evasion)

    async def resolve(self, request: ResolutionRequest) -> ResolutionOutcome:
        """Resolve one request; never raises for expected failures."""
        if request.declared_source == DeclaredSource.TRUSTED_ARCHIVE:
            logger.info("Trusted source, using entry URL as-is: %s", request.entry_url)
            return ResolvedUrl(url=request.entry_url)

        if request.entry_url.startswith("ipfs://") or is_direct_download_host(request.entry_url):
            logger.info("Entry URL is already a direct link: %s", request.entry_url)
            return ResolvedUrl(url=ipfs_to_gateway(request.entry_url))

        budget = self.config.resolver.overall_budget_seconds
        try:
            outcome = await asyncio.wait_for(self._resolve_chain(request), timeout=budget)
        except asyncio.TimeoutError:
            logger.warning("Resolution of %s exceeded %.0fs budget", request.entry_url, budget)
            outcome = Failed(
                reason=FailureReason.TIMEOUT,
                message=f"Resolution exceeded the {budget:.0f}s budget",
            )

        if isinstance(outcome, Failed):
            return outcome.model_copy(update={"original_url": request.entry_url})
        return outcome

    async def resolve_payload(self, payload: dict[str, Any]) -> tuple[dict[str, Any], bytes | None]:
        """Resolve a JSON request body; returns the response body and any file bytes."""
        outcome = await self.resolve(ResolutionRequest.from_payload(payload))
        data = outcome.data if isinstance(outcome, ResolvedBytes) else None
        return outcome.to_payload(), data

    async def _resolve_chain(self, request: ResolutionRequest) -> ResolutionOutcome:
        logger.info("Resolving %s", request.entry_url)
        async with self._fetcher_factory() as fetcher:
            entry = await fetcher.fetch_with_retry(request.entry_url)
            if not entry.success:
                logger.info("Entry page fetch failed: %s", entry.error)
                return _fetch_failure(entry)

            candidates = plan_mirrors(entry.html, entry.final_url, request.hints)
            if not candidates:
                logger.info("No recognized mirrors on %s", request.entry_url)
                return Failed(
                    reason=FailureReason.NO_MIRROR_FOUND,
                    message="No recognized mirror links on the entry page",
                )

            failures: list[Failed] = []
            for candidate in candidates:
                logger.info(
                    "Trying mirror %s (%s, priority %d): %s",
                    candidate.family, candidate.kind.value, candidate.priority, candidate.url,
                )
                outcome = await self._try_candidate(candidate, fetcher, entry.final_url)
                if not isinstance(outcome, Failed):
                    logger.info("Resolved via %s", candidate.family)
                    return outcome
                logger.info("Mirror %s failed: %s", candidate.family, outcome.reason.value)
                failures.append(outcome)

        if len(failures) == 1:
            return failures[0]
        return Failed(
            reason=FailureReason.ALL_MIRRORS_EXHAUSTED,
            message="; ".join(f"{c.family}: {f.reason.value}" for c, f in zip(candidates, failures)),
        )

    async def _try_candidate(
        self, candidate: MirrorCandidate, fetcher: BaseFetcher, referer: str
    ) -> ResolutionOutcome:
        if candidate.kind == MirrorKind.DIRECT_LINK_PATTERN:
            return ResolvedUrl(url=candidate.url)

        if candidate.requires_browser:
            return await self.navigator.navigate(candidate.url)

        family = MirrorRegistry.get(candidate.family)
        selectors = family.next_hop_selectors if family and family.next_hop_selectors else FILE_LINK_SELECTORS
        return await self._follow_intermediate(fetcher, candidate.url, selectors, referer, depth=0)

    async def _follow_intermediate(
        self,
        fetcher: BaseFetcher,
        url: str,
        selectors: list[LinkSelector],
        referer: str,
        depth: int,
    ) -> ResolutionOutcome:
        """Follow an intermediate page to its next hop, recursing on non-file hops."""
        page = await fetcher.fetch_with_retry(url, referer=referer)
        if not page.success:
            return _fetch_failure(page)

        links = [
            link for link in extract_links(page.html, selectors, base_url=page.final_url)
            if not is_excluded_link(link)
        ]
        if not links:
            return Failed(
                reason=FailureReason.NO_MIRROR_FOUND,
                original_url=url,
                message="No next-hop link on intermediate page",
            )

        next_hop = links[0]
        if is_download_url(next_hop):
            return ResolvedUrl(url=next_hop)

        if depth < self.config.resolver.max_intermediate_hops:
            logger.debug("Following intermediate hop %s", next_hop)
            return await self._follow_intermediate(
                fetcher, next_hop, FILE_LINK_SELECTORS, page.final_url, depth + 1
            )

        return Failed(
            reason=FailureReason.NO_MIRROR_FOUND,
            original_url=url,
            message=f"Next hop {next_hop} is not a file link",
        )


async def resolve(
    request: ResolutionRequest, config: AppConfig | None = None
) -> ResolutionOutcome:
    """Resolve a request with default collaborators."""
    return await Orchestrator(config).resolve(request)
