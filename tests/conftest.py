"""Shared fixtures for the sync tests."""

from datetime import datetime, timedelta, timezone

import pytest

from statussync.models import LifecycleState, RawIncident, SyncConfig

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def form_body(severity="major", services="A, B", description="Falha geral", update=""):
    """Render an issue-form body the way GitHub does."""
    return (
        f"### Severidade\n\n{severity}\n\n"
        f"### Serviços afetados\n\n{services}\n\n"
        f"### Descrição do incidente\n\n{description}\n\n"
        f"### Atualização (opcional)\n\n{update or '_No response_'}\n"
    )


@pytest.fixture
def config():
    return SyncConfig(catalog=("A", "B", "C"))


@pytest.fixture
def make_raw():
    """Factory for trusted, open incident tickets."""

    def _make(id=1, **overrides):
        fields = dict(
            id=id,
            title=f"[INCIDENTE] Incident {id}",
            body=form_body(),
            state=LifecycleState.OPEN,
            author_association="OWNER",
            created_at=BASE_TIME + timedelta(minutes=id),
            updated_at=BASE_TIME + timedelta(minutes=id),
            url=f"https://github.com/acme/status/issues/{id}",
        )
        fields.update(overrides)
        return RawIncident(**fields)

    return _make


@pytest.fixture
def form():
    return form_body
