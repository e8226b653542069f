from __future__ import annotations

import logging
from typing import Any

from bs4 import BeautifulSoup, Tag

from grantscraper.errors import SourceParseError
from grantscraper.ingest.base import BaseSource
from grantscraper.ingest.markup import element_text, find_heading, section_items
from grantscraper.normalize.deadlines import parse_deadline
from grantscraper.normalize.schema import CanonicalRecord, Deadline, item_text

logger = logging.getLogger(__name__)

_LISTING_URL = "https://careersfilipino.com/scholarships/page/{page}/"
_HEADING_TAGS = ("h2", "h3", "h4")
_ELIGIBILITY_HEADINGS = ("Eligibility", "Qualifications", "Who Can Apply", "Who can apply")
_BENEFITS_HEADINGS = ("Benefits", "Coverage", "What You Get")
_REQUIREMENTS_HEADINGS = ("Requirements", "Documents")
_DEADLINE_TAGS = ("p", "li", "td", "h3", "h4")


class CareersFilipinoSource(BaseSource):
    name = "careers_filipino"
    site = "Careers Filipino"

    def extract(self, http_client: Any) -> list[CanonicalRecord]:
        links: list[str] = []
        for page, soup in self.paginate(http_client, _LISTING_URL):
            page_links = self.parse_listing(soup)
            if not page_links:
                logger.info("%s: page %d is empty; pagination complete.", self.name, page)
                break
            links.extend(page_links)
        return self.collect_details(http_client, links, self.parse_detail)

    @staticmethod
    def parse_listing(soup: BeautifulSoup) -> list[str]:
        return [anchor["href"] for anchor in soup.select("a.ct-media-container[href]")]

    def parse_detail(self, soup: BeautifulSoup, link: str) -> CanonicalRecord:
        name = element_text(soup.find("h2"))
        if not name:
            raise SourceParseError(f"No scholarship title found at {link}.")

        content = soup.select_one(".entry-content") or soup
        benefits = [
            item_text(item)
            for item in section_items(_heading(content, _BENEFITS_HEADINGS), stop_tags=_HEADING_TAGS)
        ]
        deadline_texts = [
            text
            for text in (element_text(el) for el in content.find_all(_DEADLINE_TAGS))
            if "deadline" in text.lower()
        ]
        return self.build_record(
            name=name,
            link=link,
            deadline=parse_deadline(deadline_texts, missing=Deadline.ongoing()),
            description=_intro(content),
            eligibility=section_items(_heading(content, _ELIGIBILITY_HEADINGS), stop_tags=_HEADING_TAGS),
            benefits=benefits,
            requirements=section_items(_heading(content, _REQUIREMENTS_HEADINGS), stop_tags=_HEADING_TAGS),
        )


def _heading(content: BeautifulSoup | Tag, needles: tuple[str, ...]) -> Tag | None:
    return find_heading(content, _HEADING_TAGS, needles)


def _intro(content: BeautifulSoup | Tag) -> str:
    """Paragraphs ahead of the first section heading."""

    paragraphs: list[str] = []
    for child in content.find_all(True, recursive=False):
        if child.name in _HEADING_TAGS and paragraphs:
            break
        if child.name == "p":
            text = element_text(child)
            if text and "deadline" not in text.lower():
                paragraphs.append(text)
    return "\n\n".join(paragraphs)
