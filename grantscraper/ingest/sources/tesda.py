from __future__ import annotations

import logging
from typing import Any

from bs4 import BeautifulSoup, Tag

from grantscraper.ingest.base import BaseSource
from grantscraper.ingest.markup import element_text, li_texts
from grantscraper.normalize.schema import AwardType, CanonicalRecord, Deadline, Level, PlainItem

logger = logging.getLogger(__name__)

PAGE_URL = "https://www.tesda.gov.ph/barangay/"
_COLUMN_SELECTOR = '.col-md-6[data-aos="fade-up"]'


class TesdaSource(BaseSource):
    """TESDA barangay programs: one page, one rolling Vocational grant per content row."""

    name = "tesda"
    site = "TESDA"

    def extract(self, http_client: Any) -> list[CanonicalRecord]:
        soup = http_client.get_soup(PAGE_URL)
        self.stats.listing_pages += 1
        return self.parse_page(soup)

    def parse_page(self, soup: BeautifulSoup) -> list[CanonicalRecord]:
        records: list[CanonicalRecord] = []
        for index, section in enumerate(soup.select(".row.content")):
            name = element_text(section.find("h3"))
            if not name:
                logger.debug("%s: content row %d has no heading; skipping.", self.name, index)
                continue

            record = self.parse_guarded(PAGE_URL, self._parse_row, index, name, section)
            if record is not None:
                records.append(record)
        return records

    def _parse_row(self, index: int, name: str, section: Tag) -> CanonicalRecord:
        description = " ".join(
            text for text in (element_text(p) for p in section.select("p:not(.font-italic)")) if text
        )
        columns = section.select(_COLUMN_SELECTOR)
        eligibility: list[str] = []
        benefits: list[str] = []
        if index == 0:
            # The lead row spreads its qualifications over both columns.
            for column in columns:
                eligibility.extend(li_texts(column, "ul li"))
        elif columns:
            eligibility = li_texts(columns[0], "ul li")
            benefits = li_texts(columns[-1], "ul li")

        return self.build_record(
            name=name,
            link=PAGE_URL,
            deadline=Deadline.ongoing(),
            description=description,
            eligibility=[PlainItem(text) for text in eligibility],
            benefits=benefits,
            level=Level.VOCATIONAL,
            award_type=AwardType.GRANT,
        )
