"""
Unit tests for the asql command line tool
"""

import os
import pytest

from asql.shell import AsqlScript

DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data')
COMMON_LOG = os.path.join(DATA_DIR, 'common.log')


@pytest.fixture
def config_file(tmpdir, monkeypatch):
    """Configuration file

    Configuration with all session files in temporary directory
    """
    monkeypatch.setattr('asql.shell.signal.signal', lambda signum, handler: None)
    for variable in ('ASQL_HISTORY', 'ASQL_ALIASES', 'ASQL_SAVEFILE', 'ASQL_CONFIG'):
        monkeypatch.delenv(variable, raising=False)

    path = os.path.join(str(tmpdir), 'asql.conf')
    with open(path, 'w') as fd:
        for key in ('history_file', 'alias_file', 'save_file', 'startup_file'):
            fd.write('{0} = {1}\n'.format(key, os.path.join(str(tmpdir), key)))
    return path


def run_script(*args):
    script = AsqlScript('asql', interactive=False)
    with pytest.raises(SystemExit) as e:
        script.run(list(args))
    return script, e.value.code


def test_execute_commands(config_file, capsys):
    script, code = run_script(
        '--config', config_file,
        '--quiet',
        '-e', 'load {0}'.format(COMMON_LOG),
        '-e', 'select count(id) from logs',
    )
    assert code == 0
    out, err = capsys.readouterr()
    assert out == '2\n'
    assert script.session.torn_down


def test_load_option(config_file, capsys):
    script, code = run_script(
        '--config', config_file,
        '--load', COMMON_LOG,
        '--label', 'www',
        '-e', 'select distinct label from logs',
    )
    assert code == 0
    out, err = capsys.readouterr()
    assert out.splitlines()[-1] == 'www'


def test_exit_command(config_file, capsys):
    script, code = run_script(
        '--config', config_file,
        '-e', 'exit',
        '-e', 'help',
    )
    assert code == 0
    out, err = capsys.readouterr()
    assert out == ''


def test_script_file(config_file, tmpdir, capsys):
    path = os.path.join(str(tmpdir), 'commands.asql')
    with open(path, 'w') as fd:
        fd.write('# count requests\n\nload {0}\nalias hits select count(id) from logs\nhits;\n'.format(COMMON_LOG))

    script, code = run_script('--config', config_file, '--quiet', '--file', path)
    assert code == 0
    out, err = capsys.readouterr()
    assert out == '2\n'

    with open(os.path.join(str(tmpdir), 'alias_file'), 'r') as fd:
        assert 'hits = select count(id) from logs' in fd.read()


def test_missing_script_file(config_file, tmpdir, capsys):
    script, code = run_script('--config', config_file, '--file', os.path.join(str(tmpdir), 'missing'))
    assert code == 1
    assert script.session.torn_down


def test_startup_file(config_file, tmpdir, capsys):
    with open(os.path.join(str(tmpdir), 'startup_file'), 'w') as fd:
        fd.write('alias hits select count(id) from logs\n')

    script, code = run_script(
        '--config', config_file,
        '--quiet',
        '-e', 'load {0}'.format(COMMON_LOG),
        '-e', 'hits',
    )
    assert code == 0
    out, err = capsys.readouterr()
    assert out == '2\n'


def test_interrupt(config_file, capsys):
    script = AsqlScript('asql', interactive=False)
    with pytest.raises(SystemExit):
        script.run(['--config', config_file, '-e', 'show'])

    with pytest.raises(SystemExit) as e:
        script.SIGINT(2, None)
    assert e.value.code == 1
    assert script.session.torn_down


def test_interactive_without_readline(config_file, monkeypatch, capsys):
    """Interactive use requires readline

    """
    monkeypatch.setattr('asql.shell.has_readline', False)
    monkeypatch.setattr('asql.shell.time.sleep', lambda seconds: None)

    script = AsqlScript('asql', interactive=True)
    with pytest.raises(SystemExit) as e:
        script.run(['--config', config_file])
    assert e.value.code == 1
    assert script.session is None
    out, err = capsys.readouterr()
    assert 'readline' in err
