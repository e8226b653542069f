from __future__ import annotations

from typing import Any

from bs4 import BeautifulSoup, Tag

from grantscraper.ingest.base import BaseSource
from grantscraper.ingest.markup import absolute_url, element_text, li_texts, title_case
from grantscraper.normalize.schema import AwardType, CanonicalRecord, Deadline, Level, MiscLink, PlainItem

PAGE_URL = "https://unifast.gov.ph/tes.html"
_DOWNLOAD_BASE = "https://unifast.gov.ph/"


class UnifastSource(BaseSource):
    name = "unifast"
    site = "UniFAST"

    def extract(self, http_client: Any) -> list[CanonicalRecord]:
        soup = http_client.get_soup(PAGE_URL)
        self.stats.listing_pages += 1
        return self.parse_page(soup)

    def parse_page(self, soup: BeautifulSoup) -> list[CanonicalRecord]:
        records: list[CanonicalRecord] = []
        for container in soup.select(".faq-container"):
            name = title_case(element_text(container.select_one(".page-title")))
            if not name:
                continue
            record = self.parse_guarded(PAGE_URL, self._parse_program, name, container)
            if record is not None:
                records.append(record)
        return records

    def _parse_program(self, name: str, container: Tag) -> CanonicalRecord:
        columns = container.select(".faq-sub-container .col-6")
        eligibility = li_texts(container.select_one(".faq-list ol"))
        requirements = li_texts(columns[-1], "ul li") if columns else []

        return self.build_record(
            name=name,
            link=PAGE_URL,
            deadline=Deadline.ongoing(),
            description=element_text(container.select_one(".fs-5")),
            eligibility=[PlainItem(text) for text in eligibility],
            benefits=self._benefits(container, name, columns),
            requirements=[PlainItem(text) for text in requirements],
            misc=self._downloads(container),
            level=Level.COLLEGE,
            award_type=AwardType.NEED_BASED,
        )

    @staticmethod
    def _benefits(container: Tag, name: str, columns: list[Tag]) -> list[str]:
        if "Tertiary Education Subsidy" in name and columns:
            return li_texts(columns[0], "ul li")
        if "Tulong Dunong Program" in name:
            heading = next(
                (el for el in container.select(".faq-title") if "Benefits" in el.get_text()),
                None,
            )
            if heading is None:
                return []
            paragraphs = [element_text(p) for p in heading.find_next_siblings("p")]
            joined = " ".join(text for text in paragraphs if text)
            return [joined] if joined else []
        return []

    @staticmethod
    def _downloads(container: Tag) -> list[MiscLink]:
        links: list[MiscLink] = []
        for anchor in container.select("a[download][href]"):
            url = absolute_url(_DOWNLOAD_BASE, anchor["href"])
            if url:
                links.append(MiscLink(label=element_text(anchor), value=url))
        return links
