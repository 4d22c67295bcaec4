"""
utils tests
"""

from seqflow.utils import command, escape_braces, run_command, shell_quote, slugify, update_dict


def test_update_dict_merges_nested():
    """
    checks that nested sections are merged rather than replaced
    """
    d1 = {'workflow': {'name': 'a', 'max_workers': 4}, 'slack': {'channel': None}}
    update_dict(d1, {'workflow': {'name': 'b'}, 'minimap2': {'preset': 'map-hifi'}})
    assert d1 == {
        'workflow': {'name': 'b', 'max_workers': 4},
        'slack': {'channel': None},
        'minimap2': {'preset': 'map-hifi'},
    }


def test_slugify():
    assert slugify('My Run 1.0') == 'my-run-1-0'
    assert slugify('FastQC:S1') == 'fastqc:s1'


def test_command_strips_indent():
    cmd = command(
        """
        echo one
        echo two
        """
    )
    assert cmd == 'set -euo pipefail\n\necho one\necho two\n'
    assert command(['a', 'b']).endswith('a\nb\n')


def test_escape_braces_survives_format():
    assert escape_braces('S{1}').format() == 'S{1}'


def test_run_command(tmp_path):
    """
    checks that output and exit code are captured
    """
    log = tmp_path / 'task' / 'task.log'
    log.parent.mkdir()
    code = run_command(command('echo hello\nexit 3'), cwd=tmp_path / 'task', log_path=log)
    assert code == 3
    assert 'hello' in log.read_text()
    assert (tmp_path / 'task' / '.command.sh').exists()


def test_shell_quote():
    assert shell_quote('S1') == 'S1'
    assert shell_quote('my sample') == "'my sample'"
    assert shell_quote('S{1}').format() == "'S{1}'"
