#!/usr/bin/env python3
# gl_project_viewer: Terminal browser for GitLab projects (GraphQL API)
#
# Hotkeys
#   j/k, arrows  move selection
#   q / Esc      quit
#
# Config highlights (optional YAML passed with --config)
#   host: gitlab.example.com
#   page_size: 50            # 1..100, GitLab caps GraphQL pages at 100
#   membership: true         # only projects you are a member of
#   max_pages: 20            # stop after N requests (default: no limit)
#   style:
#     row.selected: "bg:ansiblue ansiwhite"
#
# Notes
# - Pages are requested one after another; the first failure aborts the fetch.
# - Nothing is written to disk unless --log-file or --save-env is given.
#
# Environment
# - GITLAB_TOKEN (scope: read_api), GITLAB_HOST
# - .env in the working directory is read for the same keys
# - MOCK_FETCH=1 (optional offline demo)

from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import textwrap
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import requests
import yaml
from prompt_toolkit import Application
from prompt_toolkit import prompt as pt_prompt
from prompt_toolkit.filters import Condition
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import ConditionalContainer, HSplit, Layout, Window
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.layout.dimension import Dimension
from prompt_toolkit.styles import Style
from prompt_toolkit.utils import get_cwidth
from prompt_toolkit.widgets import Frame


LOGGER_NAME = 'gl_project_viewer'

TOKEN_ENV = "GITLAB_TOKEN"
HOST_ENV = "GITLAB_HOST"

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 100
DEFAULT_TIMEOUT = 60.0

EXIT_OK = 0
EXIT_PRECONDITION = 1
EXIT_FETCH = 2
EXIT_NAVIGATOR = 3
EXIT_INTERRUPTED = 130

ProgressCB = Callable[[int, int], None]


# -----------------------------
# Errors
# -----------------------------
class PreconditionError(ValueError):
    """Missing credentials or invalid configuration; raised before any network I/O."""


class FetchError(RuntimeError):
    kind = "fetch"

    def __str__(self) -> str:
        return f"{self.kind} error: {super().__str__()}"


class TransportError(FetchError):
    kind = "transport"


class ApiError(FetchError):
    kind = "api"

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"HTTP {status}: {body.strip() or '(empty body)'}")


class GraphQLError(FetchError):
    kind = "graphql"

    def __init__(self, messages: Sequence[str]):
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


class DecodeError(FetchError):
    kind = "decode"


class NavigatorError(RuntimeError):
    """The terminal could not be taken over for the interactive browser."""


# -----------------------------
# Config
# -----------------------------
@dataclass
class Config:
    host: Optional[str] = None
    page_size: int = DEFAULT_PAGE_SIZE
    membership: bool = False
    max_pages: Optional[int] = None
    timeout: float = DEFAULT_TIMEOUT
    log_level: str = "ERROR"
    log_file: Optional[str] = None
    style: Dict[str, str] = field(default_factory=dict)


def _int_option(raw: dict, key: str, default: Optional[int], minimum: int = 1,
                maximum: Optional[int] = None) -> Optional[int]:
    val = raw.get(key, default)
    if val is None:
        return None
    if isinstance(val, bool) or not isinstance(val, int):
        raise PreconditionError(f"Config: '{key}' must be an integer, got {val!r}")
    if val < minimum or (maximum is not None and val > maximum):
        upper = f"..{maximum}" if maximum is not None else " or more"
        raise PreconditionError(f"Config: '{key}' must be {minimum}{upper}, got {val}")
    return val


def load_config(path: Optional[str]) -> Config:
    if not path:
        return Config()
    try:
        with open(os.path.expanduser(path), "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except OSError as exc:
        raise PreconditionError(f"Config: cannot read {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise PreconditionError(f"Config: invalid YAML in {path}: {exc}") from exc
    raw = raw or {}
    if not isinstance(raw, dict):
        raise PreconditionError("Config: top level must be a mapping")

    host = raw.get("host")
    if host is not None and not isinstance(host, str):
        raise PreconditionError(f"Config: 'host' must be a string, got {host!r}")
    membership = raw.get("membership", False)
    if not isinstance(membership, bool):
        raise PreconditionError(f"Config: 'membership' must be true or false, got {membership!r}")
    timeout = raw.get("timeout", DEFAULT_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise PreconditionError(f"Config: 'timeout' must be a positive number, got {timeout!r}")
    style = raw.get("style") or {}
    if not isinstance(style, dict) or not all(isinstance(v, str) for v in style.values()):
        raise PreconditionError("Config: 'style' must map style classes to style strings")
    log_file = raw.get("log_file")

    return Config(
        host=host.strip() if host else None,
        page_size=_int_option(raw, "page_size", DEFAULT_PAGE_SIZE, maximum=MAX_PAGE_SIZE),
        membership=membership,
        max_pages=_int_option(raw, "max_pages", None),
        timeout=float(timeout),
        log_level=str(raw.get("log_level") or "ERROR"),
        log_file=os.path.expanduser(str(log_file)) if log_file else None,
        style={str(k): v for k, v in style.items()},
    )


def setup_logging(level: str = "ERROR", log_file: Optional[str] = None, stream=None) -> logging.Logger:
    """Install exactly one handler on the package logger.

    File output when ``log_file`` is set, ``stream`` output when given,
    otherwise a NullHandler so nothing leaks onto the terminal.
    """
    lvl = getattr(logging, str(level).upper(), None)
    if not isinstance(lvl, int):
        raise PreconditionError(f"Unknown log level: {level}")
    logger = logging.getLogger(LOGGER_NAME)
    # Always reset handlers so repeated setup (tests, CLI) does not stack them.
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    logger.setLevel(logging.DEBUG)
    if log_file:
        handler: logging.Handler = RotatingFileHandler(log_file, maxBytes=2000000, backupCount=2, encoding='utf-8')
    elif stream is not None:
        handler = logging.StreamHandler(stream)
    else:
        handler = logging.NullHandler()
    handler.setLevel(lvl)
    handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(message)s'))
    logger.addHandler(handler)
    return logger


# -----------------------------
# Credentials
# -----------------------------
def load_dotenv(path: str = ".env") -> Dict[str, str]:
    """Parse KEY=VALUE lines from a .env file; missing file yields {}."""
    out: Dict[str, str] = {}
    if not os.path.isfile(path):
        return out
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith('#') or '=' not in line:
                continue
            k, v = line.split('=', 1)
            k = k.strip()
            if k.startswith("export "):
                k = k[len("export "):].strip()
            v = v.strip().strip('"').strip("'")
            if k and v:
                out[k] = v
    return out


class CredentialSupplier:
    """Resolve the (token, host) pair handed to the fetcher.

    Lookup order per key: explicit overrides, process environment, .env,
    defaults (config file), then an interactive prompt. A blank answer at the
    prompt raises PreconditionError.
    """

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        dotenv_path: str = ".env",
        prompt: Optional[Callable[..., str]] = None,
        overrides: Optional[Mapping[str, Optional[str]]] = None,
        defaults: Optional[Mapping[str, Optional[str]]] = None,
        persist: bool = False,
    ):
        self.environ = os.environ if environ is None else environ
        self.dotenv_path = dotenv_path
        self.prompt = prompt or pt_prompt
        self.overrides = dict(overrides or {})
        self.defaults = dict(defaults or {})
        self.persist = persist
        self._dotenv: Optional[Dict[str, str]] = None

    def supply(self) -> Tuple[str, str]:
        token = self._resolve(TOKEN_ENV, "GitLab token", secret=True)
        host = self._resolve(HOST_ENV, "GitLab host")
        return token, host

    def _dotenv_values(self) -> Dict[str, str]:
        if self._dotenv is None:
            self._dotenv = load_dotenv(self.dotenv_path)
        return self._dotenv

    def _resolve(self, key: str, label: str, secret: bool = False) -> str:
        for source in (self.overrides, self.environ, self._dotenv_values(), self.defaults):
            value = (source.get(key) or "").strip()
            if value:
                return value
        try:
            answer = self.prompt(f"Enter your {label} (leave blank to exit): ", is_password=secret)
        except EOFError:
            answer = ""
        answer = (answer or "").strip()
        if not answer:
            raise PreconditionError(f"{label} is required.")
        if self.persist:
            self._save(key, answer)
        return answer

    def _save(self, key: str, value: str) -> None:
        try:
            with open(self.dotenv_path, "a", encoding="utf-8") as f:
                f.write(f"{key}={value}\n")
        except OSError as exc:
            # The value is still usable for this run.
            logging.getLogger(LOGGER_NAME).warning("Failed to save %s to %s: %s", key, self.dotenv_path, exc)
            return
        if self._dotenv is not None:
            self._dotenv[key] = value


# -----------------------------
# GraphQL transport
# -----------------------------
GQL_LIST_PROJECTS = """
query Projects($first: Int, $after: String) {
  projects(first: $first, after: $after) {
    nodes { name description webUrl }
    pageInfo { hasNextPage endCursor }
  }
}
"""

GQL_LIST_MEMBER_PROJECTS = """
query MemberProjects($first: Int, $after: String) {
  projects(first: $first, after: $after, membership: true) {
    nodes { name description webUrl }
    pageInfo { hasNextPage endCursor }
  }
}
"""


def graphql_endpoint(host: str) -> str:
    """`gitlab.example.com` -> `https://gitlab.example.com/api/graphql`; an explicit scheme/port is kept."""
    base = (host or "").strip().rstrip("/")
    if not base:
        raise PreconditionError("GitLab host is required.")
    if "://" not in base:
        base = f"https://{base}"
    return f"{base}/api/graphql"


def _session(token: str) -> requests.Session:
    s = requests.Session()
    s.headers["Authorization"] = f"Bearer {token}"
    s.headers["Content-Type"] = "application/json"
    s.headers["Accept"] = "application/json"
    return s


def _graphql_raw(
    session: requests.Session,
    endpoint: str,
    query: str,
    variables: Dict[str, object],
    timeout: float = DEFAULT_TIMEOUT,
) -> Dict:
    try:
        r = session.post(endpoint, json={"query": query, "variables": variables}, timeout=timeout)
    except requests.exceptions.RequestException as exc:
        logging.getLogger(LOGGER_NAME).debug("GraphQL request to %s failed", endpoint, exc_info=True)
        raise TransportError(str(exc) or exc.__class__.__name__) from exc
    if not 200 <= r.status_code < 300:
        logging.getLogger(LOGGER_NAME).error("GraphQL HTTP %s: %s", r.status_code, r.text[:200])
        raise ApiError(r.status_code, r.text[:2000])
    try:
        payload = r.json()
    except ValueError as exc:
        raise DecodeError(f"response is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise DecodeError("response body is not a JSON object")
    errs = payload.get("errors") or []
    if errs:
        logging.getLogger(LOGGER_NAME).error("GraphQL errors: %s", errs)
        raise GraphQLError([
            (e.get("message") if isinstance(e, dict) else None) or str(e)
            for e in errs
        ])
    return payload


# -----------------------------
# Project fetcher
# -----------------------------
@dataclass(frozen=True)
class Project:
    name: str
    description: Optional[str]
    web_url: str


@dataclass
class _ProjectPage:
    projects: List[Project]
    node_count: int
    has_next: bool
    end_cursor: Optional[str]


def _decode_project(node: object) -> Project:
    if not isinstance(node, dict):
        raise DecodeError(f"project node is not an object: {node!r}")
    name = node.get("name")
    web_url = node.get("webUrl")
    description = node.get("description")
    if not isinstance(name, str):
        raise DecodeError(f"project node is missing 'name': {node!r}")
    if not isinstance(web_url, str):
        raise DecodeError(f"project {name!r} is missing 'webUrl'")
    if description is not None and not isinstance(description, str):
        raise DecodeError(f"project {name!r} has a non-string description")
    return Project(name=name, description=description, web_url=web_url)


def _decode_page(payload: Dict) -> _ProjectPage:
    data = payload.get("data")
    projects = data.get("projects") if isinstance(data, dict) else None
    if not isinstance(projects, dict):
        raise DecodeError("response is missing 'data.projects'")
    nodes = projects.get("nodes")
    page_info = projects.get("pageInfo")
    if not isinstance(nodes, list):
        raise DecodeError("response is missing 'data.projects.nodes'")
    if not isinstance(page_info, dict) or not isinstance(page_info.get("hasNextPage"), bool):
        raise DecodeError("response is missing 'data.projects.pageInfo.hasNextPage'")
    end_cursor = page_info.get("endCursor")
    if end_cursor is not None and not isinstance(end_cursor, str):
        raise DecodeError(f"unexpected endCursor: {end_cursor!r}")
    # null nodes are projects the token may list but not read
    decoded = [_decode_project(n) for n in nodes if n is not None]
    return _ProjectPage(
        projects=decoded,
        node_count=len(nodes),
        has_next=page_info["hasNextPage"],
        end_cursor=end_cursor,
    )


def fetch_all_projects(
    token: str,
    host: str,
    page_size: int = DEFAULT_PAGE_SIZE,
    *,
    membership: bool = False,
    max_pages: Optional[int] = None,
    timeout: float = DEFAULT_TIMEOUT,
    progress: Optional[ProgressCB] = None,
) -> List[Project]:
    """Fetch every project visible to ``token`` on ``host`` in server order.

    Pages are requested strictly one after another, following ``endCursor``
    until ``hasNextPage`` is false. A page with no nodes, a cursor that was
    already sent, or reaching ``max_pages`` ends the loop early with what was
    collected so far. Any FetchError aborts the whole fetch.
    """
    if not token or not token.strip():
        raise PreconditionError("GitLab token is required.")
    endpoint = graphql_endpoint(host)
    if not 1 <= page_size <= MAX_PAGE_SIZE:
        raise PreconditionError(f"page size must be 1..{MAX_PAGE_SIZE}, got {page_size}")
    query = GQL_LIST_MEMBER_PROJECTS if membership else GQL_LIST_PROJECTS
    logger = logging.getLogger(LOGGER_NAME)

    out: List[Project] = []
    sent_cursors = set()
    after: Optional[str] = None
    pages = 0
    session = _session(token.strip())
    try:
        while True:
            variables: Dict[str, object] = {"after": after, "first": page_size}
            page = _decode_page(_graphql_raw(session, endpoint, query, variables, timeout=timeout))
            pages += 1
            out.extend(page.projects)
            logger.debug("Page %d: %d nodes, hasNextPage=%s", pages, page.node_count, page.has_next)
            if progress:
                progress(pages, len(out))

            if not page.has_next:
                break
            if page.node_count == 0:
                logger.warning("Empty page %d reported hasNextPage; stopping with %d projects", pages, len(out))
                break
            if not page.end_cursor:
                raise DecodeError("pageInfo.endCursor is missing while hasNextPage is true")
            if page.end_cursor in sent_cursors:
                logger.warning("Server repeated cursor %r; stopping with %d projects", page.end_cursor, len(out))
                break
            if max_pages is not None and pages >= max_pages:
                logger.warning("Reached max_pages=%d; stopping with %d projects", max_pages, len(out))
                break
            after = page.end_cursor
            sent_cursors.add(after)
    finally:
        session.close()

    logger.info("Fetched %d projects from %s in %d requests", len(out), endpoint, pages)
    return out


# -----------------------------
# Navigator state
# -----------------------------
NEXT_KEYS = ('down', 'j')
PREV_KEYS = ('up', 'k')
QUIT_KEYS = ('escape', 'q', 'c-c')


@dataclass
class NavigatorState:
    items: Tuple[Project, ...] = ()
    visible_height: int = 10
    cursor_index: int = 0
    viewport_offset: int = 0
    running: bool = True

    def __post_init__(self) -> None:
        self.items = tuple(self.items)
        self.visible_height = max(1, int(self.visible_height))
        self._scroll_to_cursor()

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def selected(self) -> Optional[Project]:
        if not self.items:
            return None
        return self.items[self.cursor_index]

    def visible_items(self) -> List[Tuple[int, Project]]:
        end = self.viewport_offset + self.visible_height
        return list(enumerate(self.items[self.viewport_offset:end], start=self.viewport_offset))

    def move(self, delta: int) -> bool:
        if not self.running or not self.items:
            return False
        before = self.cursor_index
        self.cursor_index = max(0, min(len(self.items) - 1, self.cursor_index + delta))
        self._scroll_to_cursor()
        return self.cursor_index != before

    def resize(self, visible_height: int) -> None:
        self.visible_height = max(1, int(visible_height))
        self._scroll_to_cursor()

    def quit(self) -> None:
        self.running = False

    def handle_key(self, key: str) -> bool:
        """Apply one key event; returns True when the state changed."""
        if not self.running:
            return False
        if key in NEXT_KEYS:
            return self.move(1)
        if key in PREV_KEYS:
            return self.move(-1)
        if key in QUIT_KEYS:
            self.quit()
            return True
        return False

    def _scroll_to_cursor(self) -> None:
        if not self.items:
            self.cursor_index = 0
            self.viewport_offset = 0
            return
        self.cursor_index = max(0, min(len(self.items) - 1, self.cursor_index))
        if self.cursor_index < self.viewport_offset:
            self.viewport_offset = self.cursor_index
        elif self.cursor_index >= self.viewport_offset + self.visible_height:
            self.viewport_offset = self.cursor_index - self.visible_height + 1
        # no blank tail after the terminal grows
        self.viewport_offset = max(0, min(self.viewport_offset, len(self.items) - self.visible_height))


# -----------------------------
# Rendering (fragments only)
# -----------------------------
DEFAULT_STYLE: Dict[str, str] = {
    "row": "",
    "row.selected": "bg:ansiblue ansiwhite bold",
    "row.url": "ansicyan",
    "detail.label": "bold",
    "empty": "italic",
    "status": "reverse",
}

DETAIL_LINES = 6
ELLIPSIS = "…"


def _layout_heights(rows: int) -> Tuple[int, int]:
    """Split terminal rows into (list rows, detail rows).

    Status bar and both frame borders take 5 rows. The detail pane shrinks
    below DETAIL_LINES on short terminals and is hidden (0) once it would
    leave the list without a row.
    """
    detail = min(DETAIL_LINES, rows - 1 - 2 - 1 - 2)
    if detail < 1:
        return max(1, rows - 1 - 2), 0
    return rows - 1 - 2 - 2 - detail, detail


def _display_width(text: str) -> int:
    return get_cwidth(text)


def _sanitize_cell_text(s: Optional[str]) -> str:
    return (s or "").replace("\r\n", " ").replace("\n", " ").replace("\r", " ").replace("\t", " ")


def _truncate(s: Optional[str], maxlen: int) -> str:
    """Truncate to a display width, ending with an ellipsis when cut."""
    s = _sanitize_cell_text(s)
    if maxlen <= 0:
        return ""
    if _display_width(s) <= maxlen:
        return s
    ell_w = get_cwidth(ELLIPSIS)
    if ell_w > maxlen:
        return ""
    out: List[str] = []
    width = 0
    for ch in s:
        ch_w = get_cwidth(ch)
        if width + ch_w + ell_w > maxlen:
            break
        out.append(ch)
        width += ch_w
    return "".join(out) + ELLIPSIS


def _pad_display(text: Optional[str], width: int) -> str:
    raw = _truncate(text, width)
    return raw + " " * max(0, width - _display_width(raw))


def _column_widths(width: int) -> Tuple[int, int, int]:
    inner = max(20, width) - 2  # selection marker
    name_w = max(8, min(32, inner // 4))
    url_w = max(12, min(60, inner // 3))
    desc_w = max(0, inner - name_w - url_w - 4)
    return name_w, desc_w, url_w


def build_fragments(state: NavigatorState, width: int) -> List[Tuple[str, str]]:
    """Return (style, text) tuples for the project list window."""
    if state.is_empty:
        return [("class:empty", "No projects found."), ("", " Press "), ("bold", "q"), ("", " to quit.")]
    name_w, desc_w, url_w = _column_widths(width)
    frags: List[Tuple[str, str]] = []
    for idx, project in state.visible_items():
        selected = idx == state.cursor_index
        style = "class:row.selected" if selected else "class:row"
        marker = "> " if selected else "  "
        cells = _pad_display(project.name, name_w)
        if desc_w:
            cells += "  " + _pad_display(project.description or "-", desc_w)
        frags.append((style, marker + cells + "  "))
        frags.append((style if selected else "class:row.url", _pad_display(project.web_url, url_w)))
        frags.append(("", "\n"))
    if frags and frags[-1] == ("", "\n"):
        frags.pop()
    return frags


def build_detail_fragments(state: NavigatorState, width: int, height: int = DETAIL_LINES) -> List[Tuple[str, str]]:
    project = state.selected
    if project is None:
        return [("class:empty", "Nothing selected.")]
    width = max(10, width)
    height = max(1, height)
    rows: List[List[Tuple[str, str]]] = [
        [("class:detail.label", "Name: "), ("", _truncate(project.name, width - 6))],
        [("class:detail.label", "Web URL: "), ("", _truncate(project.web_url, width - 9))],
        [("class:detail.label", "Description:")],
    ]
    budget = height - len(rows)
    if budget > 0:
        lines = textwrap.wrap(_sanitize_cell_text(project.description), width) or ["No description"]
        if len(lines) > budget:
            lines = lines[:budget]
            last = _truncate(lines[-1], width - get_cwidth(ELLIPSIS))
            lines[-1] = last if last.endswith(ELLIPSIS) else last + ELLIPSIS
        rows.extend([("", line)] for line in lines)
    frags: List[Tuple[str, str]] = []
    for row in rows[:height]:
        if frags:
            frags.append(("", "\n"))
        frags.extend(row)
    return frags


def build_status_fragments(state: NavigatorState) -> List[Tuple[str, str]]:
    total = len(state.items)
    pos = state.cursor_index + 1 if total else 0
    return [("class:status", f" {pos}/{total} projects   ↑/↓ j/k move   q/Esc quit ")]


# -----------------------------
# TUI
# -----------------------------
def _ensure_terminal(stdin=None, stdout=None) -> None:
    streams = (("stdin", stdin if stdin is not None else sys.stdin),
               ("stdout", stdout if stdout is not None else sys.stdout))
    for label, stream in streams:
        try:
            is_tty = bool(stream.isatty())
        except (AttributeError, ValueError):
            is_tty = False
        if not is_tty:
            raise NavigatorError(f"{label} is not a terminal; use --no-ui for plain output")


def _build_key_bindings(state: NavigatorState) -> KeyBindings:
    kb = KeyBindings()

    def _bind(key_name: str) -> None:
        @kb.add(key_name)
        def _(event):
            state.handle_key(key_name)
            if not state.running:
                event.app.exit()

    for key_name in NEXT_KEYS + PREV_KEYS + QUIT_KEYS:
        _bind(key_name)
    return kb


def _terminal_size() -> Tuple[int, int]:
    from prompt_toolkit.application.current import get_app
    size = get_app().output.get_size()
    return size.rows, size.columns


def _build_application(state: NavigatorState, style_overrides: Optional[Dict[str, str]] = None) -> Application:
    def list_text():
        rows, cols = _terminal_size()
        # viewport is re-clamped on every render, which covers terminal resizes
        state.resize(_layout_heights(rows)[0])
        return build_fragments(state, cols - 2)

    def detail_rows() -> int:
        return _layout_heights(_terminal_size()[0])[1]

    def detail_text():
        _rows, cols = _terminal_size()
        return build_detail_fragments(state, cols - 2, detail_rows())

    list_window = Window(content=FormattedTextControl(list_text), wrap_lines=False, always_hide_cursor=True)
    detail_window = Window(
        content=FormattedTextControl(detail_text),
        height=lambda: Dimension.exact(max(1, detail_rows())),
        wrap_lines=False,
        always_hide_cursor=True,
    )
    status_window = Window(content=FormattedTextControl(lambda: build_status_fragments(state)), height=1)
    container = HSplit([
        Frame(body=list_window, title="Projects (q/Esc to quit)"),
        ConditionalContainer(Frame(body=detail_window, title="Details"), filter=Condition(lambda: detail_rows() > 0)),
        status_window,
    ])
    style = Style.from_dict({**DEFAULT_STYLE, **(style_overrides or {})})
    return Application(layout=Layout(container), key_bindings=_build_key_bindings(state), full_screen=True, style=style)


def _raise_system_exit(signum, _frame):
    raise SystemExit(128 + signum)


def run_ui(state: NavigatorState, style_overrides: Optional[Dict[str, str]] = None, stdin=None, stdout=None) -> None:
    """Run the full-screen browser until the user quits.

    prompt_toolkit owns raw mode and the alternate screen for the lifetime of
    ``Application.run`` and restores both when it returns or raises; SIGTERM
    is converted into SystemExit so it unwinds through the same path.
    """
    _ensure_terminal(stdin, stdout)
    app = _build_application(state, style_overrides)
    try:
        previous = signal.signal(signal.SIGTERM, _raise_system_exit)
    except ValueError:
        # not the main thread
        previous = None
    try:
        app.run()
    except OSError as exc:
        raise NavigatorError(f"terminal setup failed: {exc}") from exc
    finally:
        state.running = False
        if previous is not None:
            signal.signal(signal.SIGTERM, previous)


# -----------------------------
# Utilities / Mock
# -----------------------------
def generate_mock_projects(count: int = 42) -> List[Project]:
    """Synthetic projects for offline demo & testing."""
    out: List[Project] = []
    for i in range(1, count + 1):
        desc = None if i % 5 == 0 else f"Demo project {i}: " + "lorem ipsum dolor sit amet " * (i % 4 + 1)
        out.append(Project(
            name=f"demo-project-{i:02d}",
            description=desc.strip() if desc else None,
            web_url=f"https://gitlab.example.com/demo/demo-project-{i:02d}",
        ))
    return out


def _print_projects(projects: Sequence[Project], stream=None) -> None:
    stream = stream or sys.stdout
    if not projects:
        print("No projects found.", file=stream)
        return
    for p in projects:
        print(f"{p.name}\t{p.web_url}\t{_sanitize_cell_text(p.description)}", file=stream)
    print(f"Projects: {len(projects)}", file=stream)


def _stderr_progress(pages: int, count: int) -> None:
    sys.stderr.write(f"\rFetching projects… page {pages}, {count} so far")
    sys.stderr.flush()


# -----------------------------
# CLI
# -----------------------------
def _apply_cli_overrides(cfg: Config, args: argparse.Namespace) -> Config:
    if args.page_size is not None:
        if not 1 <= args.page_size <= MAX_PAGE_SIZE:
            raise PreconditionError(f"--page-size must be 1..{MAX_PAGE_SIZE}")
        cfg.page_size = args.page_size
    if args.max_pages is not None:
        if args.max_pages < 1:
            raise PreconditionError("--max-pages must be 1 or more")
        cfg.max_pages = args.max_pages
    if args.timeout is not None:
        if args.timeout <= 0:
            raise PreconditionError("--timeout must be positive")
        cfg.timeout = args.timeout
    if args.membership:
        cfg.membership = True
    if args.log_level:
        cfg.log_level = args.log_level
    if args.log_file:
        cfg.log_file = os.path.expanduser(args.log_file)
    return cfg


def _load_projects(cfg: Config, args: argparse.Namespace) -> List[Project]:
    if os.environ.get("MOCK_FETCH") == "1":
        return generate_mock_projects()
    supplier = CredentialSupplier(
        overrides={HOST_ENV: args.host},
        defaults={HOST_ENV: cfg.host},
        persist=args.save_env,
    )
    token, host = supplier.supply()
    show_progress = sys.stderr.isatty()
    try:
        return fetch_all_projects(
            token,
            host,
            cfg.page_size,
            membership=cfg.membership,
            max_pages=cfg.max_pages,
            timeout=cfg.timeout,
            progress=_stderr_progress if show_progress else None,
        )
    finally:
        if show_progress:
            sys.stderr.write("\n")


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="gl-project-viewer", description="GitLab projects browser")
    ap.add_argument("--host", help=f"GitLab host, optionally with scheme/port (default: ${HOST_ENV})")
    ap.add_argument("--config", help="Path to optional YAML config")
    ap.add_argument("--page-size", type=int, help=f"Projects per GraphQL request (1..{MAX_PAGE_SIZE})")
    ap.add_argument("--membership", action="store_true", help="Only list projects you are a member of")
    ap.add_argument("--max-pages", type=int, help="Stop after N requests (default: no limit)")
    ap.add_argument("--timeout", type=float, help="HTTP timeout in seconds")
    ap.add_argument("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)")
    ap.add_argument("--log-file", help="Write logs to a rotating file at PATH")
    ap.add_argument("--save-env", action="store_true", help="Append prompted credentials to ./.env")
    ap.add_argument("--no-ui", action="store_true", help="Print the project list and exit")
    args = ap.parse_args(argv)

    try:
        cfg = _apply_cli_overrides(load_config(args.config), args)
        stream = sys.stderr if (args.log_level and not cfg.log_file) else None
        setup_logging(cfg.log_level, cfg.log_file, stream=stream)
    except (PreconditionError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_PRECONDITION

    try:
        projects = _load_projects(cfg, args)
    except PreconditionError as e:
        print(f"{e} Exiting.", file=sys.stderr)
        return EXIT_PRECONDITION
    except FetchError as e:
        print(f"Failed to fetch projects: {e}", file=sys.stderr)
        return EXIT_FETCH
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        return EXIT_INTERRUPTED

    if args.no_ui:
        _print_projects(projects)
        return EXIT_OK

    state = NavigatorState(items=tuple(projects))
    try:
        run_ui(state, style_overrides=cfg.style)
    except NavigatorError as e:
        print(f"Terminal error: {e}", file=sys.stderr)
        return EXIT_NAVIGATOR
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
