from concurrent.futures import CancelledError, Future

from flowkit.current_flow import CurrentFlow
from flowkit.events import SaveIntegration
from flowkit.model import ENDPOINT, Connection, Integration, Step
from flowkit.persistence import InMemoryIntegrationStore, failed


def _endpoint(connector_id: str | None) -> Step:
    connection = Connection(name=connector_id, connector_id=connector_id) if connector_id else None
    return Step(step_kind=ENDPOINT, connection=connection)


def _make_flow(store, *, tags=(), steps=None) -> CurrentFlow:
    flow = CurrentFlow(store)
    if steps is None:
        steps = [_endpoint("twitter"), Step(step_kind="filter"), _endpoint("salesforce")]
    flow.load(Integration(name="demo", tags=tuple(tags), steps=tuple(steps)))
    flow.scheduler.run_until_idle()
    return flow


class _Recorder:
    def __init__(self) -> None:
        self.saved = []
        self.errors = []

    def on_success(self, integration):
        self.saved.append(integration)

    def on_error(self, reason):
        self.errors.append(reason)


def test_save_merges_connector_tags_and_reports_on_later_tick():
    store = InMemoryIntegrationStore()
    flow = _make_flow(store, tags=("twitter", "social"))
    recorder = _Recorder()

    flow.emit(SaveIntegration(on_success=recorder.on_success, on_error=recorder.on_error))

    assert recorder.saved == []
    assert len(flow.pending_saves()) == 1

    flow.scheduler.run_until_idle()

    assert recorder.errors == []
    assert len(recorder.saved) == 1
    saved = recorder.saved[0]
    assert saved.tags == ("twitter", "social", "salesforce")
    assert saved.id
    assert store.get(saved.id).tags == saved.tags
    assert flow.pending_saves() == ()


def test_save_does_not_touch_the_edited_document():
    flow = _make_flow(InMemoryIntegrationStore(), tags=("social",))
    flow.save()
    flow.scheduler.run_until_idle()
    assert flow.integration.tags == ("social",)
    assert flow.integration.id is None


def test_saving_twice_yields_the_same_tags():
    flow = _make_flow(InMemoryIntegrationStore())
    recorder = _Recorder()

    flow.save(recorder.on_success)
    flow.save(recorder.on_success)
    flow.scheduler.run_until_idle()

    assert [saved.tags for saved in recorder.saved] == [
        ("twitter", "salesforce"),
        ("twitter", "salesforce"),
    ]


def test_duplicate_connectors_and_blank_endpoints_are_skipped():
    flow = _make_flow(
        InMemoryIntegrationStore(),
        steps=[_endpoint("ftp"), _endpoint(None), _endpoint("ftp")],
    )
    recorder = _Recorder()
    flow.save(recorder.on_success)
    flow.scheduler.run_until_idle()
    assert recorder.saved[0].tags == ("ftp",)


def test_save_failure_calls_error_continuation_only():
    class _FailingStore:
        def update_or_create(self, integration):
            return failed(ConnectionError("backend down"))

    flow = _make_flow(_FailingStore())
    recorder = _Recorder()

    flow.emit({"kind": "integration-save", "action": recorder.on_success, "error": recorder.on_error})
    flow.scheduler.run_until_idle()

    assert recorder.saved == []
    assert len(recorder.errors) == 1
    assert isinstance(recorder.errors[0], ConnectionError)
    assert flow.pending_saves() == ()


def test_store_raising_synchronously_is_a_failed_save():
    class _BrokenStore:
        def update_or_create(self, integration):
            raise ValueError("refused")

    flow = _make_flow(_BrokenStore())
    recorder = _Recorder()

    flow.save(recorder.on_success, recorder.on_error)
    assert recorder.errors == []
    flow.scheduler.run_until_idle()

    assert [str(reason) for reason in recorder.errors] == ["refused"]


def test_save_without_integration_reports_error():
    flow = CurrentFlow(InMemoryIntegrationStore())
    recorder = _Recorder()
    flow.save(recorder.on_success, recorder.on_error)
    flow.scheduler.run_until_idle()
    assert recorder.saved == []
    assert len(recorder.errors) == 1


def test_save_completes_when_store_resolves_later():
    pending: Future = Future()

    class _SlowStore:
        def update_or_create(self, integration):
            self.received = integration
            return pending

    store = _SlowStore()
    flow = _make_flow(store)
    recorder = _Recorder()

    save_id = flow.save(recorder.on_success)
    flow.scheduler.run_until_idle()
    assert flow.pending_saves() == (save_id,)
    assert recorder.saved == []

    pending.set_result(store.received)
    flow.scheduler.run_until_idle()

    assert recorder.saved == [store.received]
    assert flow.pending_saves() == ()


def test_cancelled_save_reports_error_once():
    pending: Future = Future()

    class _SlowStore:
        def update_or_create(self, integration):
            return pending

    flow = _make_flow(_SlowStore())
    recorder = _Recorder()
    flow.save(recorder.on_success, recorder.on_error)

    pending.cancel()
    flow.scheduler.run_until_idle()

    assert recorder.saved == []
    assert len(recorder.errors) == 1
    assert isinstance(recorder.errors[0], CancelledError)
    assert flow.pending_saves() == ()

    flow.scheduler.run_until_idle()
    assert len(recorder.errors) == 1


def test_save_keeps_fields_the_model_does_not_name():
    raw_step = {
        "stepKind": "endpoint",
        "connection": {"connectorId": "ftp", "configuredProperties": {"host": "h"}, "icon": "ftp"},
        "action": {"name": "a", "descriptor": {"p": 1}},
    }
    store = InMemoryIntegrationStore()
    flow = CurrentFlow(store)
    flow.load({"name": "demo", "steps": [raw_step]})
    flow.scheduler.run_until_idle()
    recorder = _Recorder()

    flow.save(recorder.on_success, recorder.on_error)
    flow.scheduler.run_until_idle()

    assert len(recorder.saved) == 1
    assert store.get(recorder.saved[0].id).to_dict()["steps"] == [raw_step]
