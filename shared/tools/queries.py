"""
GraphQL query templates for the NerdGraph API.

Each template takes its variables through ``$name`` placeholders; optional
cursor variables are simply omitted on the first page.
"""
from __future__ import annotations

from dataclasses import dataclass

from config.constants import ENTITY_SEARCH_FILTER


@dataclass(frozen=True)
class Query:
    name: str
    text: str


ACCESSIBLE_ACCOUNTS = Query(
    name="AccessibleAccounts",
    text="""query AccessibleAccounts {
  actor {
    accounts {
      id
      name
    }
  }
}""",
)

LIST_ENTITIES = Query(
    name="ListEntities",
    text="""query ListEntities($searchQuery: String!, $cursor: String) {
  actor {
    entitySearch(query: $searchQuery) {
      count
      results(cursor: $cursor) {
        nextCursor
        entities {
          ... on ApmApplicationEntityOutline {
            guid
            name
            applicationId
            accountId
            language
            reporting
          }
        }
      }
    }
  }
}""",
)

LOOKUP_LIBRARY_IN_ENTITY = Query(
    name="LookupLibraryInEntity",
    text="""query LookupLibraryInEntity($entityGuid: EntityGuid!, $libraryName: String!) {
  actor {
    entity(guid: $entityGuid) {
      ... on ApmApplicationEntity {
        guid
        name
        accountId
        applicationId
        language
        applicationInstances {
          modules(filter: {startsWith: $libraryName}) {
            name
            version
            attributes {
              name
              value
            }
          }
        }
        runningAgentVersions {
          minVersion
          maxVersion
        }
      }
    }
  }
}""",
)

LOOKUP_LIBRARY_IN_ACCOUNT = Query(
    name="LookupLibraryInAccount",
    text="""query LookupLibraryInAccount($accountId: Int!, $libraryName: String!, $cursor: String) {
  actor {
    account(id: $accountId) {
      agentEnvironment {
        modules(filter: {contains: $libraryName}, cursor: $cursor) {
          nextCursor
          results {
            details {
              name
              host
            }
            loadedModules {
              name
              version
              attributes {
                name
                value
              }
            }
            applicationGuids
          }
        }
      }
    }
  }
}""",
)


def entity_search_filter(language: str | None = None) -> str:
    """Return the entity search expression, optionally narrowed to *language*."""
    if not language:
        return ENTITY_SEARCH_FILTER
    safe_language = language.strip().lower().replace("'", "")
    return f"{ENTITY_SEARCH_FILTER} AND language = '{safe_language}'"
