from __future__ import annotations

import logging
from typing import Any

from bs4 import BeautifulSoup, Tag

from grantscraper.errors import SourceParseError
from grantscraper.ingest.base import BaseSource
from grantscraper.ingest.markup import (
    element_text,
    find_heading,
    has_class,
    li_texts,
    section_items,
)
from grantscraper.normalize.deadlines import parse_deadline
from grantscraper.normalize.schema import CanonicalRecord, Deadline, MiscLink

logger = logging.getLogger(__name__)

_LISTING_URL = "https://philscholar.com/category/scholarship-programs/page/{page}"

# Elements that tend to carry the application deadline on a Philscholar article.
_DEADLINE_SELECTORS = ", ".join(
    (
        "#application-deadline ~ p",
        "#application-deadline ~ table td",
        "#application-deadline ~ li",
        "#application-period-and-key-dates ~ ul",
        'li:-soup-contains("Application Deadline")',
        'li:-soup-contains("Application Period")',
        'li:-soup-contains("Last Day for Filing")',
        'li:-soup-contains("Deadline")',
        'p:-soup-contains("deadline")',
        'p:-soup-contains("apply")',
        'p:-soup-contains("submission")',
        'table th:-soup-contains("Deadline")',
        'table td:-soup-contains("Deadline")',
    )
)
_DESCRIPTION_STOP_TAGS = ("h2", "blockquote")


class PhilscholarSource(BaseSource):
    name = "philscholar"
    site = "Philscholar"

    def extract(self, http_client: Any) -> list[CanonicalRecord]:
        links: list[str] = []
        for page, soup in self.paginate(http_client, _LISTING_URL):
            page_links = self.parse_listing(soup)
            logger.info("%s: page %d lists %d scholarships.", self.name, page, len(page_links))
            links.extend(page_links)
            if soup.select_one("a.wp-block-query-pagination-next[href]") is None:
                break
        return self.collect_details(http_client, links, self.parse_detail)

    @staticmethod
    def parse_listing(soup: BeautifulSoup) -> list[str]:
        links: list[str] = []
        for anchor in soup.select("h2.wp-block-post-title a[href]"):
            # Round-up posts ("List of ...") are not scholarships themselves.
            if "List" in anchor.get_text():
                continue
            links.append(anchor["href"])
        return links

    def parse_detail(self, soup: BeautifulSoup, link: str) -> CanonicalRecord:
        title = soup.select_one("h1.wp-block-post-title")
        name = element_text(title).split("|")[0].strip()
        if not name:
            raise SourceParseError(f"No scholarship title found at {link}.")

        description = _about_text(soup)
        benefits_heading = find_heading(soup, ("h2", "h3"), ("Benefits", "Scholarship Coverage"))
        benefits: list[str] = []
        if benefits_heading is not None:
            benefits_list = benefits_heading.find_next_sibling("ul")
            benefits = li_texts(benefits_list)

        eligibility = section_items(find_heading(soup, ("h2", "h3"), ("Eligibility", "Qualifications")))
        requirements_heading = soup.select_one("h3#requirements") or find_heading(
            soup, ("h2", "h3"), ("Requirements",)
        )
        requirements = section_items(requirements_heading)

        deadline_texts = [element_text(el) for el in soup.select(_DEADLINE_SELECTORS)]
        return self.build_record(
            name=name,
            link=link,
            deadline=parse_deadline(deadline_texts, missing=Deadline.passed()),
            description=description,
            eligibility=eligibility,
            benefits=benefits,
            requirements=requirements,
            misc=_button_links(soup),
        )


def _about_text(soup: BeautifulSoup) -> str:
    heading = find_heading(soup, ("h2",), ("About",))
    if heading is None:
        return ""

    paragraphs: list[str] = []
    for sibling in heading.find_next_siblings():
        if sibling.name in _DESCRIPTION_STOP_TAGS or has_class(sibling, "wp-block-spacer"):
            break
        if sibling.name == "p":
            text = element_text(sibling)
            if text:
                paragraphs.append(text)
    return "\n\n".join(paragraphs)


def _button_links(soup: BeautifulSoup) -> list[MiscLink]:
    links: list[MiscLink] = []
    seen: set[str] = set()
    for button in soup.select(".wp-block-button__link"):
        if not isinstance(button, Tag):
            continue
        href = button.get("href")
        label = element_text(button)
        if not href or not label or href in seen:
            continue
        seen.add(href)
        links.append(MiscLink(label=label, value=href))
    return links
