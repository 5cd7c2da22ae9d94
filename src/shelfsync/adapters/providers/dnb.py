"""Deutsche Nationalbibliothek lookup over SRU with Dublin Core records."""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from shelfsync.adapters.http_resilience import ResilientClient
from shelfsync.domain.errors import ProviderUnavailable
from shelfsync.domain.lookup.query import IdentifierKey
from shelfsync.domain.records import CandidateRecord

if TYPE_CHECKING:
    from collections.abc import Callable

    from shelfsync.config.http_resilience import ResilienceConfig
    from shelfsync.domain.lookup.query import SearchHints, SearchKey

log = logging.getLogger(__name__)

PROVIDER_NAME: Final[str] = "Deutsche Nationalbibliothek"

NAMESPACES: Final[dict[str, str]] = {
    "srw": "http://www.loc.gov/zing/srw/",
    "dc": "http://purl.org/dc/elements/1.1/",
    "xsi": "http://www.w3.org/2001/XMLSchema-instance",
}
_XSI_TYPE: Final[str] = f"{{{NAMESPACES['xsi']}}}type"
_ROLE_SUFFIX = re.compile(r"\s*\[[^\]]*\]\s*$")


class DnbAPIError(ProviderUnavailable):
    def __init__(self, reason: str) -> None:
        super().__init__(PROVIDER_NAME, reason)


@dataclass(slots=True, frozen=True)
class DnbRecord:
    title: str
    subtitle: str | None = None
    creators: tuple[str, ...] = ()
    publisher: str | None = None
    date: str | None = None
    description: str | None = None
    language: str | None = None
    subjects: tuple[str, ...] = field(default_factory=tuple)
    idn: str | None = None


def _texts(element: ET.Element, tag: str) -> list[str]:
    values: list[str] = []
    for node in element.findall(f"dc:{tag}", NAMESPACES):
        text = (node.text or "").strip()
        if text:
            values.append(text)
    return values


def _split_title(raw: str) -> tuple[str, str | None]:
    # "Der Name der Rose : Roman / Umberto Eco"
    title, _, _responsibility = raw.partition(" / ")
    title, _, subtitle = title.partition(" : ")
    return title.strip(), subtitle.strip() or None


def parse_sru_response(text: str) -> DnbRecord | None:
    """First Dublin Core record of an SRU response, or ``None`` when there is none."""

    try:
        root = ET.fromstring(text)  # noqa: S314
    except ET.ParseError as exc:
        raise DnbAPIError(f"Unparsable SRU response: {exc}") from exc

    record_data = root.find(".//srw:recordData", NAMESPACES)
    if record_data is None or len(record_data) == 0:
        return None
    record = record_data[0]

    titles = _texts(record, "title")
    if not titles:
        return None
    title, subtitle = _split_title(titles[0])

    idn = next(
        (
            (node.text or "").strip()
            for node in record.findall("dc:identifier", NAMESPACES)
            if node.get(_XSI_TYPE) == "dnb:IDN"
        ),
        None,
    )
    return DnbRecord(
        title=title,
        subtitle=subtitle,
        creators=tuple(_ROLE_SUFFIX.sub("", creator) for creator in _texts(record, "creator")),
        publisher=next(iter(_texts(record, "publisher")), None),
        date=next(iter(_texts(record, "date")), None),
        description=next(iter(_texts(record, "description")), None),
        language=next(iter(_texts(record, "language")), None),
        subjects=tuple(_texts(record, "subject")),
        idn=idn or None,
    )


def translate_record(record: DnbRecord) -> CandidateRecord:
    return CandidateRecord(
        title=record.title,
        subtitle=record.subtitle,
        author="; ".join(record.creators) or None,
        publisher=record.publisher,
        published_date=record.date,
        description=record.description,
        language=record.language,
        subjects=list(record.subjects),
        dnb_id=record.idn,
        data_sources=[PROVIDER_NAME],
    )


class DnbProvider:
    def __init__(
        self,
        *,
        resilience: ResilienceConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._resilience = resilience
        self._client_factory = client_factory or ResilientClient

    @property
    def name(self) -> str:
        return PROVIDER_NAME

    @property
    def supports_identifier(self) -> bool:
        return True

    @property
    def supports_text(self) -> bool:
        return False

    async def query(self, key: SearchKey, hints: SearchHints | None = None) -> DnbRecord | None:  # noqa: ARG002
        if not isinstance(key, IdentifierKey):
            return None
        params = {
            "version": "1.1",
            "operation": "searchRetrieve",
            "query": f"isbn={key.value}",
            "recordSchema": "oai_dc",
            "maximumRecords": "1",
        }
        url = self._resilience.base_url
        if url is None:
            raise DnbAPIError("Missing DNB base_url in resilience configuration")
        async with self._client_factory(self._resilience) as client:
            text = await client.get_text(url, params=params)
        return parse_sru_response(text)

    def normalize(self, raw: DnbRecord) -> list[CandidateRecord]:
        return [translate_record(raw)]
