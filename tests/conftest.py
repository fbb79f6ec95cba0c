import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from podstudio.application import reset_batch_state, reset_edit_sessions
from podstudio.infrastructure import reset_access_broker, reset_generation_service
from podstudio.workers.scheduler import reset_generation_scheduler


@pytest.fixture(autouse=True)
def reset_state():
    reset_batch_state()
    reset_edit_sessions()
    reset_generation_service()
    reset_access_broker()
    reset_generation_scheduler()
    yield
    reset_batch_state()
    reset_edit_sessions()
    reset_generation_service()
    reset_access_broker()
    reset_generation_scheduler()
