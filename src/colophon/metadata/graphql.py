# ABOUTME: Metadata repository backed by a remote GraphQL metadata API.
# ABOUTME: Fetches work graphs by id or publisher; unresolved ids are reported, not raised.

import logging
from collections.abc import Sequence
from typing import Any

from colophon.errors import RepositoryUnavailable
from colophon.metadata.graphql_parser import parse_work
from colophon.metadata.http import HttpClient, MetadataFetchError
from colophon.metadata.repository import FetchResult

logger = logging.getLogger(__name__)

_WORK_FIELDS = """
    workId
    workType
    title
    subtitle
    edition
    doi
    publicationDate
    place
    pageCount
    license
    longAbstract
    shortAbstract
    landingPage
    imprint {
        imprintId
        imprintName
        publisher { publisherId publisherName }
    }
    contributions {
        contributionType
        fullName
        firstName
        lastName
        contributionOrdinal
        contributor { orcid }
    }
    publications {
        publicationType
        isbn
        prices { currencyCode unitPrice }
    }
    languages { languageCode mainLanguage }
    subjects { subjectType subjectCode subjectOrdinal }
"""

WORK_QUERY = "query WorkQuery($workId: Uuid!) { work(workId: $workId) {" + _WORK_FIELDS + "} }"

WORK_IDS_QUERY = (
    "query WorkIdsQuery($publishers: [Uuid!], $limit: Int, $offset: Int) "
    "{ works(publishers: $publishers, limit: $limit, offset: $offset) { workId } }"
)

_PAGE_SIZE = 100


class GraphQLRepository:
    """MetadataRepository over a GraphQL endpoint.

    Issues one `work(workId)` query per requested id. A response carrying
    GraphQL errors and no work marks the id as missing; HTTP and transport
    failures abort the whole fetch with RepositoryUnavailable.
    """

    def __init__(self, http_client: HttpClient, endpoint: str) -> None:
        self._http = http_client
        self._endpoint = endpoint

    def _query(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        try:
            return self._http.post(self._endpoint, {"query": query, "variables": variables})
        except MetadataFetchError as exc:
            raise RepositoryUnavailable(str(exc)) from exc

    def fetch(
        self, work_ids: Sequence[str], publisher_id: str | None = None
    ) -> FetchResult:
        found = {}
        missing = []
        for work_id in work_ids:
            body = self._query(WORK_QUERY, {"workId": work_id})
            data = (body.get("data") or {}).get("work")
            if not data:
                errors = body.get("errors") or []
                logger.warning(
                    "Work %s not resolved: %s",
                    work_id,
                    "; ".join(str(e.get("message", e)) for e in errors) or "no data",
                )
                missing.append(work_id)
                continue
            work = parse_work(data)
            if publisher_id is not None and work.publisher.publisher_id != publisher_id:
                missing.append(work_id)
                continue
            found[work_id] = work
        return FetchResult(works=found, missing=tuple(missing))

    def list_work_ids(self, publisher_id: str) -> list[str]:
        """Page through the works of a publisher and return their ids."""
        work_ids: list[str] = []
        offset = 0
        while True:
            body = self._query(
                WORK_IDS_QUERY,
                {"publishers": [publisher_id], "limit": _PAGE_SIZE, "offset": offset},
            )
            page = (body.get("data") or {}).get("works") or []
            work_ids.extend(entry["workId"] for entry in page)
            if len(page) < _PAGE_SIZE:
                return work_ids
            offset += _PAGE_SIZE
