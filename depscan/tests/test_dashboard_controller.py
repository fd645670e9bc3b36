"""
Tests for dashboard sequencing: activation, refresh, failures and stale responses.
"""

import asyncio
import time
import pytest

from depscan.domain.repository_models import Session
from depscan.services.dashboard_controller import DashboardController
from depscan.services.profile_store import ProfileStore
from depscan.services.repository_fetcher import FetchOutcome
from depscan.tests.factories import ScriptedFetcher, make_repository


@pytest.fixture
def profile_store():
    """Store holding the test subject's profile."""
    store = ProfileStore()
    store.upsert({'id': '583231', 'username': 'octocat', 'full_name': 'The Octocat'})
    return store


def controller_with(fetcher, profile_store=None):
    return DashboardController(profile_store=profile_store or ProfileStore(), fetcher=fetcher)


@pytest.mark.asyncio
async def test_activation_loads_profile_and_repositories(session, profile_store, success_outcome):
    """Initial load fills profile and repository list silently."""
    fetcher = ScriptedFetcher([success_outcome])
    controller = controller_with(fetcher, profile_store)

    state = await controller.activate(session)

    assert state.profile.username == 'octocat'
    assert len(state.raw_repositories) == 5
    assert state.is_refreshing is False
    view = controller.render(session.view_key)
    assert view['notifications'] == []
    assert view['profile']['initial'] == 'O'


@pytest.mark.asyncio
async def test_activation_without_token_skips_fetch(profile_store):
    """No delegated token: no network call, empty list, no error."""
    fetcher = ScriptedFetcher()
    controller = controller_with(fetcher, profile_store)

    state = await controller.activate(Session(subject_id='583231'))

    assert fetcher.network_calls == 0
    assert state.raw_repositories == ()
    assert state.is_refreshing is False
    assert controller.render('583231')['notifications'] == []


@pytest.mark.asyncio
async def test_activation_without_profile_uses_fallback(session, success_outcome):
    """Missing profile does not block repositories."""
    controller = controller_with(ScriptedFetcher([success_outcome]))

    state = await controller.activate(session)

    assert state.profile is None
    assert len(state.raw_repositories) == 5
    assert controller.render(session.view_key)['profile']['username'] == 'User'


@pytest.mark.asyncio
async def test_initial_load_failure_notifies(session, failure_outcome):
    """Initial load is noisy on failure."""
    controller = controller_with(ScriptedFetcher([failure_outcome]))

    await controller.activate(session)
    notifications = controller.render(session.view_key)['notifications']

    assert len(notifications) == 1
    assert notifications[0]['level'] == 'error'


@pytest.mark.asyncio
async def test_refresh_failure_keeps_previous_list(session, success_outcome, failure_outcome):
    """A failed refresh keeps the five repositories and emits one error."""
    controller = controller_with(ScriptedFetcher([success_outcome, failure_outcome]))
    await controller.activate(session)

    outcome = await controller.refresh(session)

    state = controller.get_state(session.view_key)
    assert outcome.failed
    assert len(state.raw_repositories) == 5
    assert state.is_refreshing is False
    notifications = controller.render(session.view_key)['notifications']
    assert [n['level'] for n in notifications] == ['error']
    # Shown once only
    assert controller.render(session.view_key)['notifications'] == []


@pytest.mark.asyncio
async def test_refresh_success_replaces_list_and_notifies(session, success_outcome):
    """Refresh fully replaces the list and reports success."""
    replacement = FetchOutcome(ok=True, repositories=(make_repository(99, 'brand-new', language='Rust'),))
    controller = controller_with(ScriptedFetcher([success_outcome, replacement]))
    await controller.activate(session)

    await controller.refresh(session)

    state = controller.get_state(session.view_key)
    assert [r.id for r in state.raw_repositories] == [99]
    notifications = controller.render(session.view_key)['notifications']
    assert [n['level'] for n in notifications] == ['success']


@pytest.mark.asyncio
async def test_refresh_marks_in_flight_until_response(session, success_outcome):
    """is_refreshing is true while a refresh is pending."""
    fetcher = ScriptedFetcher([success_outcome], gated=True)
    controller = controller_with(fetcher)

    task = asyncio.create_task(controller.refresh(session))
    await asyncio.sleep(0)
    assert controller.get_state(session.view_key).is_refreshing is True

    fetcher.gates[0].set()
    await task
    assert controller.get_state(session.view_key).is_refreshing is False


@pytest.mark.asyncio
async def test_stale_response_cannot_overwrite_newer_result(session):
    """A slow first refresh arriving last is discarded."""
    slow = FetchOutcome(ok=True, repositories=(make_repository(1, 'stale'),))
    fast = FetchOutcome(ok=True, repositories=(make_repository(2, 'fresh'),))
    fetcher = ScriptedFetcher([slow, fast], gated=True)
    controller = controller_with(fetcher)

    first = asyncio.create_task(controller.refresh(session))
    await asyncio.sleep(0)
    second = asyncio.create_task(controller.refresh(session))
    await asyncio.sleep(0)

    fetcher.gates[1].set()
    await second
    state = controller.get_state(session.view_key)
    assert [r.name for r in state.raw_repositories] == ['fresh']
    assert state.is_refreshing is False

    fetcher.gates[0].set()
    await first
    assert [r.name for r in state.raw_repositories] == ['fresh']
    assert state.is_refreshing is False
    assert len(controller.render(session.view_key)['notifications']) == 1


@pytest.mark.asyncio
async def test_stale_failure_does_not_notify(session, failure_outcome, success_outcome):
    """Only the latest request reports to the user."""
    fetcher = ScriptedFetcher([failure_outcome, success_outcome], gated=True)
    controller = controller_with(fetcher)

    first = asyncio.create_task(controller.refresh(session))
    await asyncio.sleep(0)
    second = asyncio.create_task(controller.refresh(session))
    await asyncio.sleep(0)

    fetcher.gates[1].set()
    await second
    fetcher.gates[0].set()
    await first

    notifications = controller.render(session.view_key)['notifications']
    assert [n['level'] for n in notifications] == ['success']


@pytest.mark.asyncio
async def test_filters_change_view_not_raw_list(session, success_outcome):
    """Search and language filters only affect the derived view."""
    controller = controller_with(ScriptedFetcher([success_outcome]))
    await controller.activate(session)

    controller.set_search_text(session.view_key, 'repo-3')
    view = controller.render(session.view_key)
    assert [r['name'] for r in view['repositories']] == ['repo-3']
    assert len(controller.get_state(session.view_key).raw_repositories) == 5

    controller.set_search_text(session.view_key, '')
    controller.set_selected_language(session.view_key, 'Go')
    assert controller.render(session.view_key)['filtered_count'] == 0

    controller.set_selected_language(session.view_key, None)
    assert controller.render(session.view_key)['selected_language'] == 'all'


@pytest.mark.asyncio
async def test_activation_starts_from_fresh_state(session, success_outcome):
    """Each page activation resets filters and reloads."""
    controller = controller_with(ScriptedFetcher([success_outcome, success_outcome]))
    await controller.activate(session)
    controller.set_search_text(session.view_key, 'repo-1')

    await controller.activate(session)

    assert controller.get_state(session.view_key).search_text == ''


def test_discard_forgets_state():
    """Sign-out drops the session's view state."""
    controller = controller_with(ScriptedFetcher())
    controller.set_search_text('583231', 'auth')

    controller.discard('583231')

    assert controller.get_state('583231').search_text == ''


@pytest.mark.asyncio
async def test_unexpected_fetch_error_clears_refreshing(session, success_outcome):
    """A fetcher bug is reported like a failed fetch and keeps the previous list."""
    fetcher = ScriptedFetcher([success_outcome, OverflowError('cannot convert float infinity to integer')])
    controller = controller_with(fetcher)
    await controller.activate(session)

    outcome = await controller.refresh(session)

    state = controller.get_state(session.view_key)
    assert outcome.failed
    assert state.is_refreshing is False
    assert len(state.raw_repositories) == 5
    notifications = controller.render(session.view_key)['notifications']
    assert [n['level'] for n in notifications] == ['error']
    assert 'Unexpected error' in notifications[0]['message']


@pytest.mark.asyncio
async def test_cancelled_fetch_clears_refreshing(session):
    """A cancelled refresh does not leave the spinner on."""
    fetcher = ScriptedFetcher([FetchOutcome(ok=True)], gated=True)
    controller = controller_with(fetcher)

    task = asyncio.create_task(controller.refresh(session))
    await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert controller.get_state(session.view_key).is_refreshing is False


@pytest.mark.asyncio
async def test_sessions_of_same_subject_keep_separate_state(success_outcome):
    """Two browsers signed in as the same user filter independently."""
    laptop = Session(subject_id='583231', access_token='gho_a', session_id='laptop')
    phone = Session(subject_id='583231', access_token='gho_b', session_id='phone')
    controller = controller_with(ScriptedFetcher([success_outcome, success_outcome]))
    await controller.activate(laptop)
    await controller.activate(phone)

    controller.set_search_text(laptop.view_key, 'repo-2')

    assert controller.render(laptop.view_key)['filtered_count'] == 1
    assert controller.render(phone.view_key)['filtered_count'] == 5


def test_idle_state_is_evicted():
    """State of a session that has gone quiet past the idle timeout is dropped."""
    controller = controller_with(ScriptedFetcher())
    controller.set_search_text('expired-view', 'auth')
    controller._last_seen['expired-view'] = time.monotonic() - controller.idle_seconds - 1

    controller.get_state('active-view')

    assert 'expired-view' not in controller._states
    assert 'expired-view' not in controller._last_seen
    assert 'active-view' in controller._states


def test_state_registry_is_capped():
    """Least recently used states are dropped beyond the cap."""
    controller = DashboardController(
        profile_store=ProfileStore(), fetcher=ScriptedFetcher(), max_states=3
    )
    for i in range(10):
        controller.get_state(f'view-{i}')
    controller.get_state('view-7')
    controller.get_state('view-10')

    assert list(controller._states) == ['view-9', 'view-7', 'view-10']
    assert set(controller._last_seen) == {'view-9', 'view-7', 'view-10'}
