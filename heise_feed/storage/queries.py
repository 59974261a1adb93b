"""GraphQL documents used against the remote store."""

import json
from typing import List

LATEST_LINK_QUERY = """query {
  link: getLink(
    where: { tags_contains: %s }
    order: datetime_DESC
  ) { datetime }
}"""

CREATE_LINK_MUTATION = """mutation createLink($title: String!, $url: String!, $date: DateTime!) {
  createLink(data: {
    title: $title
    url: $url
    datetime: $date
    tags: %s
  }) { id createdAt }
}"""

TRIGGER_EVENT_MUTATION = """mutation CreateEvent($event: String!, $data: JSON, $info: String) {
  triggerEvent(name: $event, data: $data, info: $info)
}"""


def latest_link_query(tag: str) -> str:
    return LATEST_LINK_QUERY % json.dumps(tag)


def create_link_mutation(tags: List[str]) -> str:
    # JSON string lists are valid GraphQL list literals
    return CREATE_LINK_MUTATION % json.dumps(list(tags))
