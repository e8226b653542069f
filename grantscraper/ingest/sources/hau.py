from __future__ import annotations

import logging
from typing import Any

from bs4 import BeautifulSoup, Tag

from grantscraper.ingest.base import BaseSource
from grantscraper.ingest.markup import element_text, has_class, li_texts
from grantscraper.normalize.schema import CanonicalRecord, Deadline, Level, PlainItem

logger = logging.getLogger(__name__)

PAGE_URL = "https://www.hau.edu.ph/admissions/scholarship-and-grants"
_SECTION_SELECTOR = "p.default-text-color.primary-font.bold.mt-20.text-uppercase"
# Two-column tables: qualifications in the first cell with a list, documents in the next one with an <ol>.
_TABLE_CELL_SELECTOR = 'td[style="width: 48.527%;"]'
_REQUIREMENTS_MARKER = "requirements:"


def section_level(title: str) -> Level:
    if title.strip().lower() == "senior high school":
        return Level.BASIC_EDUCATION
    return Level.COLLEGE


class HauSource(BaseSource):
    name = "hau"
    site = "HAU Scholarships & Grants"
    # The site serves an incomplete certificate chain.
    verify_tls = False

    def extract(self, http_client: Any) -> list[CanonicalRecord]:
        soup = http_client.get_soup(PAGE_URL)
        self.stats.listing_pages += 1
        return self.parse_page(soup)

    def parse_page(self, soup: BeautifulSoup) -> list[CanonicalRecord]:
        records: list[CanonicalRecord] = []
        for header in soup.select(_SECTION_SELECTOR):
            level = section_level(element_text(header))
            tabs = header.find_next_sibling()
            if tabs is None or not has_class(tabs, "nav-tabs-wrapper"):
                logger.debug("%s: section %r has no tab container.", self.name, element_text(header))
                continue

            for anchor in tabs.select('.nav-tabs a[data-toggle="tab"]'):
                name = element_text(anchor)
                tab_id = anchor.get("href") or ""
                if not name or not tab_id.startswith("#"):
                    continue
                panel = tabs.find(id=tab_id[1:])
                if panel is None:
                    logger.debug("%s: tab %s has no panel.", self.name, tab_id)
                    continue
                record = self.parse_guarded(PAGE_URL, self._parse_tab, name, panel, level)
                if record is not None:
                    records.append(record)
        return records

    def _parse_tab(self, name: str, panel: Tag, level: Level) -> CanonicalRecord:
        description_lines: list[str] = []
        benefits: list[str] = []
        found_requirements = False
        for child in panel.find_all(recursive=False):
            text = element_text(child)
            mentions_requirements = _REQUIREMENTS_MARKER in text.lower()
            if child.name == "p" and not mentions_requirements:
                description_lines.append(text)
            elif child.name in ("ul", "ol") and not found_requirements:
                entries = li_texts(child)
                if not description_lines:
                    # A list before any paragraph is the benefit summary.
                    benefits = entries
                else:
                    description_lines.extend(entries)
            if mentions_requirements:
                found_requirements = True

        eligibility = _cell_items_after(panel, "eligibility:")
        requirements = _cell_items_after(panel, "REQUIREMENTS:")
        for paragraph in panel.find_all("p"):
            paragraph_text = paragraph.get_text()
            if "REQUIREMENTS:" in paragraph_text or "Requirements:" in paragraph_text:
                following = paragraph.find_next_sibling()
                if following is not None and following.name == "ol":
                    requirements.extend(li_texts(following))

        table_eligibility, table_requirements = _table_columns(panel)
        eligibility.extend(table_eligibility)
        requirements.extend(table_requirements)

        return self.build_record(
            name=name,
            link=PAGE_URL,
            deadline=Deadline.ongoing(),
            description="\n".join(line for line in description_lines if line),
            eligibility=[PlainItem(text) for text in eligibility],
            benefits=benefits,
            requirements=[PlainItem(text) for text in requirements],
            level=level,
        )


def _cell_items_after(panel: Tag, marker: str) -> list[str]:
    items: list[str] = []
    for cell in panel.find_all("td"):
        if marker not in cell.get_text():
            continue
        neighbour = cell.find_next_sibling("td")
        items.extend(li_texts(neighbour))
    return items


def _table_columns(panel: Tag) -> tuple[list[str], list[str]]:
    eligibility: list[str] = []
    requirements: list[str] = []
    qualification_found = False
    for cell in panel.select(_TABLE_CELL_SELECTOR):
        if not qualification_found:
            listing = cell.find("ul")
            if listing is not None:
                eligibility = li_texts(listing)
                qualification_found = True
            continue
        ordered = cell.find("ol")
        if ordered is not None:
            requirements = li_texts(ordered)
            break
    return eligibility, requirements
