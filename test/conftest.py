"""
Session fixtures
"""

import os
import pytest

from asql.history import History
from asql.interpreter import CommandInterpreter
from asql.session import Session, SessionConfig


@pytest.fixture
def config(tmpdir):
    """Session configuration

    Configuration with all files in temporary directory, ignoring
    environment variables and user's configuration file.
    """
    return SessionConfig(
        path=os.path.join(str(tmpdir), 'asql.conf'),
        environment={},
        history_file=os.path.join(str(tmpdir), 'history'),
        alias_file=os.path.join(str(tmpdir), 'aliases'),
        save_file=os.path.join(str(tmpdir), 'saved.db'),
        startup_file=os.path.join(str(tmpdir), 'startup'),
    )


@pytest.fixture
def session(request, config):
    session = Session(config, history=History(config.history_file))
    request.addfinalizer(session.teardown)
    return session


@pytest.fixture
def interpreter(session):
    return CommandInterpreter(session)
