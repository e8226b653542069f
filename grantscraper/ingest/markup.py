from __future__ import annotations

import re
from typing import Iterable
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from grantscraper.normalize.schema import GroupedItem, ListItem, PlainItem

_WS_PATTERN = re.compile(r"\s+")
_LIST_TAGS = ("ul", "ol")


def clean_text(value: str | None) -> str:
    if not value:
        return ""
    return _WS_PATTERN.sub(" ", value).strip()


def element_text(element: Tag | None) -> str:
    if element is None:
        return ""
    return clean_text(element.get_text())


def title_case(value: str) -> str:
    """Lowercase everything, then capitalize the first letter of each word."""

    return re.sub(r"(^|\s)(\S)", lambda m: m.group(1) + m.group(2).upper(), value.lower())


def absolute_url(base_url: str, href: str | None) -> str | None:
    if not href:
        return None
    return urljoin(base_url, href.strip())


def list_items(list_tag: Tag | None) -> list[ListItem]:
    """Read the direct <li> children of a list; an item with a nested list becomes a GroupedItem."""

    if list_tag is None:
        return []

    items: list[ListItem] = []
    for li in list_tag.find_all("li", recursive=False):
        nested = li.find_all(_LIST_TAGS, recursive=False)
        if nested:
            sub_items = [element_text(sub) for lst in nested for sub in lst.find_all("li")]
            own_text = clean_text(
                " ".join(
                    child.get_text() if isinstance(child, Tag) else str(child)
                    for child in li.children
                    if not (isinstance(child, Tag) and child.name in _LIST_TAGS)
                )
            )
            items.append(GroupedItem(title=own_text, items=tuple(s for s in sub_items if s)))
            continue
        text = element_text(li)
        if text:
            items.append(PlainItem(text))
    return items


def li_texts(container: Tag | None, selector: str = "li") -> list[str]:
    if container is None:
        return []
    return [text for text in (element_text(li) for li in container.select(selector)) if text]


def find_heading(soup: BeautifulSoup | Tag, names: Iterable[str], needles: Iterable[str]) -> Tag | None:
    """First heading in document order whose text contains one of `needles` (case-sensitive)."""

    needles = tuple(needles)
    for heading in soup.find_all(list(names)):
        text = heading.get_text()
        if any(needle in text for needle in needles):
            return heading
    return None


def has_class(element: Tag, class_name: str) -> bool:
    return class_name in (element.get("class") or [])


def section_lists(
    heading: Tag | None,
    *,
    stop_class: str = "wp-block-spacer",
    stop_tags: tuple[str, ...] = (),
) -> list[Tag]:
    """Lists that follow `heading` as siblings, up to the first element carrying `stop_class`
    or named in `stop_tags`."""

    if heading is None:
        return []
    lists: list[Tag] = []
    for sibling in heading.find_next_siblings():
        if has_class(sibling, stop_class) or sibling.name in stop_tags:
            break
        if sibling.name in _LIST_TAGS:
            lists.append(sibling)
    return lists


def section_items(
    heading: Tag | None,
    *,
    stop_class: str = "wp-block-spacer",
    stop_tags: tuple[str, ...] = (),
) -> list[ListItem]:
    items: list[ListItem] = []
    for lst in section_lists(heading, stop_class=stop_class, stop_tags=stop_tags):
        items.extend(list_items(lst))
    return items


def split_on_breaks(element: Tag | None) -> list[str]:
    """Split an element's content into text chunks at each <br>."""

    if element is None:
        return []

    chunks: list[str] = []
    current: list[str] = []
    for node in element.descendants:
        if isinstance(node, Tag) and node.name == "br":
            chunks.append(clean_text("".join(current)))
            current = []
        elif isinstance(node, NavigableString) and not isinstance(node, Comment):
            current.append(str(node))
    chunks.append(clean_text("".join(current)))
    return [chunk for chunk in chunks if chunk]
