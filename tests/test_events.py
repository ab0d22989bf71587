from contract_suite.runner.events import (
    ContractStarted,
    NotificationChannel,
    NotificationKind,
    RunDone,
    RunStarted,
)


def test_emit_delivers_in_subscription_order():
    channel = NotificationChannel()
    seen = []
    channel.subscribe(lambda n: seen.append(("first", n.kind)))
    channel.subscribe(lambda n: seen.append(("second", n.kind)))

    channel.emit(RunStarted(unit_names=("ATest",)))

    assert seen == [
        ("first", NotificationKind.RUN_STARTED),
        ("second", NotificationKind.RUN_STARTED),
    ]


def test_subscribe_filters_by_kind():
    channel = NotificationChannel()
    seen = []
    channel.subscribe(seen.append, kinds=[NotificationKind.RUN_DONE])

    channel.emit(RunStarted())
    channel.emit(RunDone(results={}))

    assert [n.kind for n in seen] == [NotificationKind.RUN_DONE]


def test_once_detaches_after_first_delivery():
    channel = NotificationChannel()
    seen = []
    channel.once(NotificationKind.CONTRACT_STARTED, seen.append)

    channel.emit(RunStarted())
    channel.emit(ContractStarted(error=None, unit_name="ATest"))
    channel.emit(ContractStarted(error=None, unit_name="BTest"))

    assert [n.unit_name for n in seen] == ["ATest"]
    assert len(channel) == 0


def test_unsubscribe():
    channel = NotificationChannel()
    seen = []
    unsubscribe = channel.subscribe(seen.append)
    unsubscribe()

    channel.emit(RunStarted())

    assert seen == []


def test_failing_listener_does_not_stop_delivery(caplog):
    channel = NotificationChannel()
    seen = []

    def broken(notification):
        raise ValueError("boom")

    channel.subscribe(broken)
    channel.subscribe(seen.append)
    channel.emit(RunStarted())

    assert len(seen) == 1
    assert "run-started" in caplog.text


def test_notification_kinds_use_wire_names():
    assert NotificationKind.METHODS_DONE.value == "methods-done"
    assert RunDone(results={}).error is None
