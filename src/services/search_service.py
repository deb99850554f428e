"""Painting and monument search backed by the Wikidata Query Service.

The reply composer only depends on the ``SearchBackend`` protocol: every
operation returns exactly one ``SearchResult`` or raises ``SearchError``
whose message is shown to the user as-is.
"""

import random
import re
import time
from typing import Any, Protocol

import httpx
import logfire

from src.config import Settings
from src.constants import SEARCH_CANDIDATE_LIMIT, USER_AGENT
from src.models.search_models import (
    ButtonOption,
    ButtonsSearchResult,
    ButtonSet,
    ImageResult,
    ImagesSearchResult,
    SearchResult,
    TextSearchResult,
)

# Wikidata items and properties used in the queries
PAINTER = "Q1028181"
PAINTING = "Q3305213"
UTRECHT = "Q803"
RIJKSMUSEUM = "Q190804"

_ENTITY_ID = re.compile(r"^Q\d+$")


class SearchError(Exception):
    """Search failed; the message is meant for the chat user."""

    pass


class SearchBackend(Protocol):
    """Contract of the search collaborator used by the reply composer."""

    async def search_painters(self, query: str) -> SearchResult: ...

    async def painter_by_date(self, date_from: str, date_to: str) -> SearchResult: ...

    async def get_monuments(self) -> SearchResult: ...

    async def random_artist(self) -> SearchResult: ...

    async def paintings_by_artist(self, artist_id: str) -> SearchResult: ...


def _value(row: dict[str, Any], name: str) -> str | None:
    cell = row.get(name)
    return cell.get("value") if cell else None


def _entity_id(uri: str) -> str:
    """Strip the entity namespace: http://www.wikidata.org/entity/Q42 -> Q42."""
    return uri.rsplit("/", 1)[-1]


def _escape_literal(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


class WikidataSearchBackend:
    """SearchBackend implementation querying the Wikidata SPARQL endpoint.

    Example:
        >>> backend = WikidataSearchBackend(settings)
        >>> result = await backend.search_painters("rembrandt")
        >>> result.type
        'buttons'
    """

    def __init__(self, settings: Settings, rng: random.Random | None = None):
        """
        Initialize the backend.

        Args:
            settings: Application settings (endpoint, language, timeout)
            rng: Random source used to pick one of the candidate rows
        """
        self.endpoint = settings.wikidata_sparql_url
        self.language = settings.search_language
        self.timeout = settings.search_timeout_seconds
        self._rng = rng or random.Random()

    def _label_service(self) -> str:
        return (
            "SERVICE wikibase:label { "
            f'bd:serviceParam wikibase:language "{self.language},en". }}'
        )

    async def _query(self, sparql: str) -> list[dict[str, Any]]:
        """Run a SPARQL query and return its result bindings."""
        start_time = time.time()
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                headers={
                    "User-Agent": USER_AGENT,
                    "Accept": "application/sparql-results+json",
                },
            ) as client:
                response = await client.get(
                    self.endpoint, params={"query": sparql, "format": "json"}
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logfire.error(
                "Wikidata query failed",
                status_code=e.response.status_code,
                response_body=e.response.text[:500],
                response_time_ms=(time.time() - start_time) * 1000,
            )
            raise SearchError("De zoekdienst gaf een foutmelding, probeer het later nog eens.") from e
        except httpx.RequestError as e:
            logfire.error(
                "Wikidata request error",
                error=str(e),
                error_type=type(e).__name__,
                response_time_ms=(time.time() - start_time) * 1000,
            )
            raise SearchError("De zoekdienst is even niet bereikbaar.") from e

        try:
            rows = response.json()["results"]["bindings"]
            if not isinstance(rows, list):
                raise TypeError(f"bindings is {type(rows).__name__}, not a list")
        except (ValueError, KeyError, TypeError) as e:
            logfire.error(
                "Wikidata returned an unreadable response",
                status_code=response.status_code,
                response_body=response.text[:500],
                error=str(e),
                error_type=type(e).__name__,
            )
            raise SearchError("De zoekdienst gaf een onleesbaar antwoord.") from e

        logfire.info(
            "Wikidata query completed",
            row_count=len(rows),
            response_time_ms=(time.time() - start_time) * 1000,
        )
        return rows

    def _painter_buttons(self, rows: list[dict[str, Any]], text: str) -> ButtonSet:
        options = []
        seen = set()
        for row in rows:
            painter_id = _entity_id(_value(row, "painter") or "")
            if not painter_id or painter_id in seen:
                continue
            seen.add(painter_id)
            options.append(
                ButtonOption(
                    title=_value(row, "painterLabel") or painter_id,
                    payload=painter_id,
                )
            )
        return ButtonSet(text=text, data=options)

    async def search_painters(self, query: str) -> SearchResult:
        """Find painters whose name matches ``query``."""
        sparql = f"""
SELECT DISTINCT ?painter ?painterLabel WHERE {{
  SERVICE wikibase:mwapi {{
    bd:serviceParam wikibase:endpoint "www.wikidata.org";
                    wikibase:api "EntitySearch";
                    mwapi:search "{_escape_literal(query)}";
                    mwapi:language "{self.language}".
    ?painter wikibase:apiOutputItem mwapi:item.
  }}
  ?painter wdt:P106 wd:{PAINTER}.
  {self._label_service()}
}}
LIMIT 3"""
        rows = await self._query(sparql)
        if not rows:
            return TextSearchResult(text=f'Ik kon geen schilders vinden voor "{query}".')
        return ButtonsSearchResult(
            buttons=self._painter_buttons(rows, "Welke schilder bedoel je?")
        )

    async def painter_by_date(self, date_from: str, date_to: str) -> SearchResult:
        """Offer painters born between two years, in either order."""
        try:
            years = sorted((int(date_from), int(date_to)))
        except ValueError as e:
            raise SearchError(
                "Geef twee jaartallen op, bijvoorbeeld 1600-1650."
            ) from e
        start, end = years

        sparql = f"""
SELECT DISTINCT ?painter ?painterLabel WHERE {{
  ?painter wdt:P106 wd:{PAINTER};
           wdt:P569 ?birth.
  FILTER(YEAR(?birth) >= {start} && YEAR(?birth) <= {end})
  ?work wdt:P170 ?painter;
        wdt:P31 wd:{PAINTING};
        wdt:P18 ?image.
  {self._label_service()}
}}
LIMIT {SEARCH_CANDIDATE_LIMIT}"""
        rows = await self._query(sparql)
        if not rows:
            return TextSearchResult(
                text=f"Ik kon geen schilders vinden die geboren zijn tussen {start} en {end}."
            )
        picked = self._rng.sample(rows, k=min(3, len(rows)))
        return ButtonsSearchResult(
            buttons=self._painter_buttons(
                picked, f"Deze schilders zijn geboren tussen {start} en {end}:"
            )
        )

    async def get_monuments(self) -> SearchResult:
        """Pick a random rijksmonument in Utrecht that has a picture."""
        sparql = f"""
SELECT ?item ?itemLabel ?itemDescription ?image WHERE {{
  ?item wdt:P359 ?monumentId;
        wdt:P131 wd:{UTRECHT};
        wdt:P18 ?image.
  {self._label_service()}
}}
LIMIT {SEARCH_CANDIDATE_LIMIT}"""
        rows = await self._query(sparql)
        if not rows:
            raise SearchError("Ik kon geen monumenten in Utrecht vinden.")

        row = self._rng.choice(rows)
        item_id = _entity_id(_value(row, "item") or "")
        return ImagesSearchResult(
            images=ImageResult(
                id=item_id,
                image=_value(row, "image") or "",
                label=_value(row, "itemLabel") or item_id,
                description=_value(row, "itemDescription") or "",
            )
        )

    async def random_artist(self) -> SearchResult:
        """Suggest a random painter with work in the Rijksmuseum."""
        sparql = f"""
SELECT DISTINCT ?painter ?painterLabel WHERE {{
  ?work wdt:P31 wd:{PAINTING};
        wdt:P195 wd:{RIJKSMUSEUM};
        wdt:P170 ?painter;
        wdt:P18 ?image.
  ?painter wdt:P106 wd:{PAINTER}.
  {self._label_service()}
}}
LIMIT {SEARCH_CANDIDATE_LIMIT}"""
        rows = await self._query(sparql)
        if not rows:
            raise SearchError("Ik kon even geen verrassing vinden.")

        row = self._rng.choice(rows)
        painter_id = _entity_id(_value(row, "painter") or "")
        label = _value(row, "painterLabel") or painter_id
        return ButtonsSearchResult(
            buttons=ButtonSet(
                text=f"Wat dacht je van {label}?",
                data=[ButtonOption(title="Laat maar zien!", payload=painter_id)],
            )
        )

    async def paintings_by_artist(self, artist_id: str) -> SearchResult:
        """Pick a random painting with an image by the given artist."""
        if not _ENTITY_ID.match(artist_id or ""):
            raise SearchError(f"Onbekende schilder: {artist_id}")

        sparql = f"""
SELECT ?work ?workLabel ?workDescription ?image ?collectionLabel ?url WHERE {{
  ?work wdt:P31 wd:{PAINTING};
        wdt:P170 wd:{artist_id};
        wdt:P18 ?image.
  OPTIONAL {{ ?work wdt:P195 ?collection. }}
  OPTIONAL {{ ?work wdt:P973 ?url. }}
  {self._label_service()}
}}
LIMIT {SEARCH_CANDIDATE_LIMIT}"""
        rows = await self._query(sparql)
        if not rows:
            raise SearchError("Ik kon geen schilderijen van deze schilder vinden.")

        row = self._rng.choice(rows)
        work_id = _entity_id(_value(row, "work") or "")
        return ImagesSearchResult(
            images=ImageResult(
                id=work_id,
                image=_value(row, "image") or "",
                label=_value(row, "workLabel") or work_id,
                description=_value(row, "workDescription") or "",
                collection=_value(row, "collectionLabel"),
                url=_value(row, "url"),
                author=artist_id,
            )
        )


def get_search_backend(settings: Settings) -> SearchBackend:
    """Factory for the search backend used by the application."""
    return WikidataSearchBackend(settings)
