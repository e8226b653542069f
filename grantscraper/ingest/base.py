from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator

from bs4 import BeautifulSoup

from grantscraper.classify import classification_text, classify_level, classify_programs, classify_type
from grantscraper.errors import SourceFetchError
from grantscraper.normalize.schema import (
    AwardType,
    CanonicalRecord,
    Deadline,
    Level,
    ListItem,
    MiscLink,
    SourceRef,
)

logger = logging.getLogger(__name__)

DetailParser = Callable[[BeautifulSoup, str], CanonicalRecord]


@dataclass(slots=True)
class FetchStats:
    listing_pages: int = 0
    details_attempted: int = 0
    details_succeeded: int = 0
    details_failed: int = 0
    failures: list[dict[str, str]] = field(default_factory=list)

    def add_failure(self, url: str, reason: str) -> None:
        self.failures.append({"url": url, "reason": reason})

    def to_dict(self) -> dict[str, Any]:
        return {
            "listing_pages": self.listing_pages,
            "details_attempted": self.details_attempted,
            "details_succeeded": self.details_succeeded,
            "details_failed": self.details_failed,
            "failures": list(self.failures),
        }


class BaseSource(ABC):
    """One upstream site. Subclasses turn its markup into CanonicalRecords."""

    name: str
    site: str
    verify_tls: bool = True

    def __init__(self, *, max_listing_pages: int | None = None) -> None:
        self.max_listing_pages = max_listing_pages
        self.stats = FetchStats()

    @abstractmethod
    def extract(self, http_client: Any) -> list[CanonicalRecord]:
        """Fetch and parse every listing this source currently offers."""

    def run(self, http_client: Any) -> list[CanonicalRecord]:
        self.stats = FetchStats()
        return self.extract(http_client)

    def source_ref(self, link: str) -> SourceRef:
        return SourceRef(link=link, site=self.site)

    def paginate(self, http_client: Any, url_template: str) -> Iterator[tuple[int, BeautifulSoup]]:
        """Yield listing pages 1..n until a 404 or the configured page cap.

        Callers stop early by breaking out once a page is empty or has no next link.
        """

        page = 1
        while self.max_listing_pages is None or page <= self.max_listing_pages:
            url = url_template.format(page=page)
            try:
                soup = http_client.get_soup(url)
            except SourceFetchError as exc:
                if exc.not_found:
                    logger.info("%s: listing page %d not found; pagination complete.", self.name, page)
                    return
                raise
            self.stats.listing_pages += 1
            yield page, soup
            page += 1

        logger.info("%s: listing page cap reached (%d).", self.name, self.max_listing_pages)

    def parse_guarded(self, label: str, parse: Callable[..., CanonicalRecord], *args: Any) -> CanonicalRecord | None:
        """Parse one listing; a failure is logged, counted against `label` and skipped."""

        self.stats.details_attempted += 1
        try:
            record = parse(*args)
        except Exception as exc:
            self.stats.details_failed += 1
            self.stats.add_failure(label, type(exc).__name__)
            logger.warning("%s: skipping listing %s (%s)", self.name, label, exc, exc_info=True)
            return None
        self.stats.details_succeeded += 1
        return record

    def collect_details(
        self,
        http_client: Any,
        links: Iterable[str],
        parse_detail: DetailParser,
    ) -> list[CanonicalRecord]:
        """Fetch and parse detail pages in traversal order; a failing page is logged and skipped."""

        records: list[CanonicalRecord] = []
        for link in dict.fromkeys(links):
            record = self.parse_guarded(link, _fetch_and_parse, http_client, link, parse_detail)
            if record is not None:
                records.append(record)
        return records

    def build_record(
        self,
        *,
        name: str,
        link: str,
        deadline: Deadline,
        description: str = "",
        eligibility: Iterable[ListItem] = (),
        benefits: Iterable[str] = (),
        requirements: Iterable[ListItem] = (),
        misc: Iterable[MiscLink] = (),
        level: Level | None = None,
        award_type: AwardType | None = None,
    ) -> CanonicalRecord:
        """Assemble a record, classifying level and type when the site does not fix them."""

        eligibility = tuple(eligibility)
        benefits = tuple(benefits)
        requirements = tuple(requirements)
        if level is None or award_type is None:
            text = classification_text(name, description, requirements, eligibility)
            level = level or classify_level(text)
            award_type = award_type or classify_type(text)

        return CanonicalRecord(
            name=name,
            description=description,
            deadline=deadline,
            level=level,
            award_type=award_type,
            eligibility=eligibility,
            benefits=benefits,
            requirements=requirements,
            programs=tuple(
                classify_programs(
                    name=name,
                    description=description,
                    benefits=benefits,
                    eligibility=eligibility,
                    requirements=requirements,
                )
            ),
            source=self.source_ref(link),
            misc=tuple(misc),
        )


def _fetch_and_parse(http_client: Any, link: str, parse_detail: DetailParser) -> CanonicalRecord:
    return parse_detail(http_client.get_soup(link), link)
