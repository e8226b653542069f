from __future__ import annotations

import re
from typing import Any

from bs4 import BeautifulSoup, Tag

from grantscraper.errors import SourceParseError
from grantscraper.ingest.base import BaseSource
from grantscraper.ingest.markup import element_text, li_texts, split_on_breaks
from grantscraper.normalize.schema import (
    AwardType,
    CanonicalRecord,
    Deadline,
    GroupedItem,
    Level,
    ListItem,
    PlainItem,
)

LISTING_URL = "https://oica.upd.edu.ph/grants-awards/"
_SUBMISSION_MARKER = "Submission of the following documents:"
_LETTER_BULLET = re.compile(r"^[a-z]\.\s*", flags=re.IGNORECASE)


class UpdOicaSource(BaseSource):
    """UP Diliman Office for Initiatives in Culture and the Arts: rolling arts grants."""

    name = "upd_oica"
    site = "UPD-OICA Grants & Awards"

    def extract(self, http_client: Any) -> list[CanonicalRecord]:
        listing = http_client.get_soup(LISTING_URL)
        self.stats.listing_pages += 1
        return self.collect_details(http_client, self.parse_listing(listing), self.parse_detail)

    @staticmethod
    def parse_listing(soup: BeautifulSoup) -> list[str]:
        return [anchor["href"] for anchor in soup.select("a.btn-primary[href]")]

    def parse_detail(self, soup: BeautifulSoup, link: str) -> CanonicalRecord:
        name = element_text(soup.select_one("h1.entry-title"))
        if not name:
            raise SourceParseError(f"No scholarship title found at {link}.")

        return self.build_record(
            name=name,
            link=link,
            deadline=Deadline.ongoing(),
            description=element_text(soup.select_one("p.has-text-align-justify")),
            eligibility=[PlainItem(text) for text in _eligibility(soup)],
            benefits=_panel_list(soup, ("ENTITLEMENTS",)),
            requirements=_requirements(soup),
            level=Level.COLLEGE,
            award_type=AwardType.ART,
        )


def _panel(soup: BeautifulSoup, needles: tuple[str, ...]) -> Tag | None:
    for title in soup.select(".wpsm_panel-title"):
        text = element_text(title).upper()
        if any(needle in text for needle in needles):
            return title.find_parent(class_="wpsm_panel")
    return None


def _panel_list(soup: BeautifulSoup, needles: tuple[str, ...]) -> list[str]:
    return li_texts(_panel(soup, needles), "ol li")


def _eligibility(soup: BeautifulSoup) -> list[str]:
    items = _panel_list(soup, ("ELIGIBILITY", "ELIGIBLE"))
    for paragraph in soup.select("p.has-text-align-left"):
        if not element_text(paragraph).startswith("1. Eligible applicants"):
            continue
        following = paragraph.find_next_sibling()
        if following is None or following.name != "ol":
            continue
        for chunk in split_on_breaks(following):
            cleaned = re.sub(r"^[a-zA-Z]\. ", "", chunk).strip()
            if cleaned:
                items.append(cleaned)
    return list(dict.fromkeys(items))


def _requirements(soup: BeautifulSoup) -> list[ListItem]:
    body = None
    for title in soup.select("h4.wpsm_panel-title"):
        label = element_text(title.select_one("span.ac_title_class")).upper()
        if "APPLICATION REQUIREMENTS" in label or "APPLICATION PROCEDURE" in label:
            panel = title.find_parent(class_="wpsm_panel")
            body = panel.select_one(".wpsm_panel-body") if panel is not None else None
            break
    if body is None:
        return []

    # Some pages pack every document into one <li> separated by <br>; that list replaces the rest.
    for li in body.find_all("li"):
        if _SUBMISSION_MARKER in li.get_text():
            documents = []
            for chunk in split_on_breaks(li):
                chunk = chunk.replace(_SUBMISSION_MARKER, "", 1).strip()
                chunk = _LETTER_BULLET.sub("", chunk).strip()
                if chunk:
                    documents.append(PlainItem(chunk))
            return documents

    requirements: list[ListItem] = []
    for ordered in body.find_all("ol"):
        following = ordered.find_next_sibling()
        if following is not None and following.name == "ul":
            first = ordered.find("li")
            entries = [element_text(li) for li in following.find_all("li") if li.find("ul") is None]
            requirements.append(
                GroupedItem(title=element_text(first), items=tuple(entry for entry in entries if entry))
            )
        elif ordered.find_previous_sibling("ol") is None:
            requirements.extend(
                PlainItem(text)
                for text in (element_text(li) for li in ordered.find_all("li", recursive=False))
                if text
            )
    return requirements
