"""Canned GitLab GraphQL replies and a stand-in for requests.Session."""


class FakeResponse:
    def __init__(self, payload=None, status_code=200, text=None):
        self.payload = payload
        self.status_code = status_code
        self.text = text if text is not None else ('' if payload is None else str(payload))

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    """Stands in for requests.Session; replies are consumed in order."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []
        self.closed = False

    def post(self, url, json=None, timeout=None):
        self.calls.append({'url': url, 'json': json, 'timeout': timeout})
        if not self.replies:
            raise AssertionError(f'unexpected request #{len(self.calls)}')
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def close(self):
        self.closed = True


def project_node(i: int, description='desc') -> dict:
    return {
        'name': f'project-{i}',
        'description': description if description is None else f'{description} {i}',
        'webUrl': f'https://gitlab.example.com/group/project-{i}',
    }


def projects_page(nodes, *, has_next=False, end_cursor=None) -> dict:
    return {
        'data': {
            'projects': {
                'nodes': nodes,
                'pageInfo': {'hasNextPage': has_next, 'endCursor': end_cursor},
            }
        }
    }


def paged_responses(total: int, page_size: int):
    """Split `total` projects into pages the way GitLab reports them."""
    replies = []
    start = 0
    page_no = 0
    while True:
        chunk = [project_node(i) for i in range(start, min(start + page_size, total))]
        start += page_size
        page_no += 1
        has_next = start < total
        replies.append(FakeResponse(projects_page(
            chunk,
            has_next=has_next,
            end_cursor=f'cursor-{page_no}' if chunk else None,
        )))
        if not has_next:
            return replies
