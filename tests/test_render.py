import pytest

import gl_project_viewer as glv


def _text(frags):
    return ''.join(text for _, text in frags)


def test_rendering_identical_state_is_byte_identical(make_projects):
    state = glv.NavigatorState(items=make_projects(12), visible_height=4)
    state.move(6)

    first = (glv.build_fragments(state, 100), glv.build_detail_fragments(state, 100), glv.build_status_fragments(state))
    second = (glv.build_fragments(state, 100), glv.build_detail_fragments(state, 100), glv.build_status_fragments(state))

    assert first == second
    assert _text(first[0]).encode('utf-8') == _text(second[0]).encode('utf-8')


def test_list_shows_visible_window_with_highlighted_cursor(make_projects):
    state = glv.NavigatorState(items=make_projects(10), visible_height=3)
    state.move(4)

    frags = glv.build_fragments(state, 120)
    lines = _text(frags).split('\n')

    assert len(lines) == 3
    assert [line.split()[0] for line in lines] == ['project-2', 'project-3', '>']
    assert 'project-4' in lines[2]
    assert 'desc 4' in lines[2]
    assert 'https://gitlab.example.com/p/4' in lines[2]

    selected = [text for style, text in frags if style == 'class:row.selected']
    assert selected and all('project-4' in t or 'gitlab.example.com/p/4' in t for t in selected)


def test_long_description_is_truncated_in_list():
    project = glv.Project(name='big', description='word ' * 100 + '\nsecond line', web_url='https://x/big')
    state = glv.NavigatorState(items=(project,), visible_height=5)

    line = _text(glv.build_fragments(state, 80))

    assert '…' in line
    assert '\n' not in line
    assert glv._display_width(line) <= 80


def test_missing_description_renders_placeholder():
    project = glv.Project(name='bare', description=None, web_url='https://x/bare')
    state = glv.NavigatorState(items=(project,))

    assert ' - ' in _text(glv.build_fragments(state, 100))
    assert 'No description' in _text(glv.build_detail_fragments(state, 60))


def test_empty_state_message():
    state = glv.NavigatorState(items=())

    assert 'No projects found.' in _text(glv.build_fragments(state, 80))
    assert _text(glv.build_status_fragments(state)).startswith(' 0/0 projects')
    assert 'Nothing selected' in _text(glv.build_detail_fragments(state, 80))


def test_detail_wraps_description_within_budget():
    project = glv.Project(name='wrap', description='alpha beta gamma delta ' * 20, web_url='https://x/wrap')
    state = glv.NavigatorState(items=(project,))

    text = _text(glv.build_detail_fragments(state, 30))
    lines = text.split('\n')

    assert lines[0] == 'Name: wrap'
    assert lines[1] == 'Web URL: https://x/wrap'
    assert lines[2] == 'Description:'
    assert len(lines) == glv.DETAIL_LINES
    assert all(glv._display_width(line) <= 30 for line in lines)
    assert lines[-1].endswith('…')


def test_status_shows_position(make_projects):
    state = glv.NavigatorState(items=make_projects(5))
    state.move(2)

    assert _text(glv.build_status_fragments(state)).startswith(' 3/5 projects')


def test_cell_helpers_handle_unicode():
    assert glv._sanitize_cell_text('line1\nline2') == 'line1 line2'
    assert glv._sanitize_cell_text(None) == ''

    truncated = glv._truncate('你好世界abc', 6)
    assert truncated.endswith('…')
    assert glv._display_width(truncated) <= 6
    assert glv._truncate('short', 10) == 'short'
    assert glv._truncate('anything', 0) == ''

    padded = glv._pad_display('你', 4)
    assert glv._display_width(padded) == 4


def test_truncate_measures_ellipsis_width(monkeypatch):
    # terminals that draw ambiguous-width glyphs as two columns
    monkeypatch.setattr(glv, 'get_cwidth', lambda text: sum(2 if ch in '…你' else 1 for ch in text))

    cut = glv._truncate('abcdefghij', 6)
    assert cut == 'abcd…'
    assert glv._display_width(cut) == 6
    assert glv._truncate('abcdefghij', 1) == ''
    assert glv._display_width(glv._pad_display('abcdefghij', 7)) == 7


@pytest.mark.parametrize('rows,expected', [
    (30, (19, 6)),
    (20, (9, 6)),
    (12, (1, 6)),
    (11, (1, 5)),
    (7, (1, 1)),
    (6, (3, 0)),
    (4, (1, 0)),
])
def test_layout_heights_keep_a_list_row_on_short_terminals(rows, expected):
    list_rows, detail_rows = glv._layout_heights(rows)

    assert (list_rows, detail_rows) == expected
    chrome = 1 + 2 + (2 + detail_rows if detail_rows else 0)
    assert list_rows + chrome == rows


def test_detail_pane_respects_reduced_height(make_projects):
    state = glv.NavigatorState(items=make_projects(1))

    lines = _text(glv.build_detail_fragments(state, 60, height=2)).split('\n')

    assert lines == ['Name: project-0', 'Web URL: https://gitlab.example.com/p/0']
