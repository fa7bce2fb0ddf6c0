from __future__ import annotations

import io
import threading

import pytest

from die import (
    CaptureResult,
    DoomContext,
    ErrorSlot,
    Panic,
    SharedSink,
    UntypedPanic,
    classify,
    custom_capture,
    guard,
    log,
    log_err,
    log_setting_returns,
    on_err,
    panic,
    recovers,
)

LOGGED_ERR = RuntimeError("Error to log!")


def t_log() -> None:
    with log("tLog"):
        on_err(ValueError("Testing Error!"))


def t_err_log() -> BaseException | None:
    with log_err("tErrLog") as slot:
        on_err(LOGGED_ERR)
    return slot.err


def t_returns(err: BaseException | None, calls: list[str]) -> tuple[int, ErrorSlot]:
    val = 0

    def fallback() -> None:
        nonlocal val
        calls.append("set")
        val = 1

    with log_setting_returns("tErrReturnValLog", set_returns=fallback) as slot:
        on_err(err)
        val = 5
    return val, slot


def labelled_by_frame() -> None:
    with log():
        on_err(ValueError("x"))


def test_nil_signal_writes_nothing(shared: io.StringIO) -> None:
    def f() -> str:
        with log("f"):
            on_err(None)
        return "done"

    assert f() == "done"
    assert shared.getvalue() == ""


def test_nil_signal_leaves_slot_empty(shared: io.StringIO) -> None:
    with log_err("f") as slot:
        on_err(None)

    assert slot.err is None
    assert slot.result == CaptureResult.NONE
    assert not slot
    assert shared.getvalue() == ""


def test_log_writes_exact_record(shared: io.StringIO) -> None:
    t_log()
    assert shared.getvalue() == "Panic caught in func: tLog, err: Testing Error!\n"


def test_log_err_exposes_original_error(shared: io.StringIO) -> None:
    err = t_err_log()

    assert err is LOGGED_ERR
    assert len(shared.getvalue()) > 0


def test_log_err_fills_given_slot(shared: io.StringIO) -> None:
    slot = ErrorSlot()
    with log_err("given", slot):
        on_err(LOGGED_ERR)

    assert slot.err is LOGGED_ERR
    assert slot.result == CaptureResult.TYPED_ERROR
    assert slot.label == "given"
    assert slot.failure is not None
    assert slot.failure.exc_type == "RuntimeError"
    assert slot.failure.message == "Error to log!"
    assert slot.failure.traceback is not None and "Error to log!" in slot.failure.traceback


def test_setting_returns_runs_only_on_capture(shared: io.StringIO) -> None:
    calls: list[str] = []
    val, slot = t_returns(LOGGED_ERR, calls)
    assert val == 1
    assert slot.err is LOGGED_ERR
    assert calls == ["set"]

    calls.clear()
    val, slot = t_returns(None, calls)
    assert val == 5
    assert slot.err is None
    assert calls == []
    assert shared.getvalue().count("\n") == 1


def test_signal_unwinds_through_except_exception(shared: io.StringIO) -> None:
    reached: list[str] = []

    def inner() -> None:
        on_err(KeyError("k"))

    def middle() -> None:
        try:
            inner()
        except Exception:
            reached.append("swallowed")
        reached.append("after")

    with log_err("outer") as slot:
        middle()

    assert reached == []
    assert isinstance(slot.err, KeyError)
    assert shared.getvalue() == "Panic caught in func: outer, err: 'k'\n"


def test_plain_exception_is_captured_as_typed(shared: io.StringIO) -> None:
    boom = ValueError("plain")
    with log_err("plain") as slot:
        raise boom

    assert slot.err is boom
    assert slot.result == CaptureResult.TYPED_ERROR
    assert shared.getvalue() == "Panic caught in func: plain, err: plain\n"


def test_untyped_payload_is_wrapped(shared: io.StringIO) -> None:
    with log_err("p") as slot:
        panic({"a": 1})

    assert slot.result == CaptureResult.OTHER
    assert isinstance(slot.err, UntypedPanic)
    assert str(slot.err) == "Error: {'a': 1}"
    assert slot.err.value == {"a": 1}
    assert shared.getvalue() == "Panic caught in func: p, err: {'a': 1}\n"


def test_keyboard_interrupt_is_not_captured(shared: io.StringIO) -> None:
    with pytest.raises(KeyboardInterrupt):
        with log("k"):
            raise KeyboardInterrupt

    assert shared.getvalue() == ""


def test_label_defaults_to_enclosing_function(shared: io.StringIO) -> None:
    labelled_by_frame()

    record = shared.getvalue()
    assert record.startswith("Panic caught in func: labelled_by_frame, err: x")


def test_capture_outside_the_signalling_region_sees_nothing(shared: io.StringIO) -> None:
    def install_capture() -> None:
        with log("helper"):
            pass

    def outer() -> None:
        install_capture()
        on_err(ValueError("escapes"))

    with pytest.raises(Panic) as info:
        outer()

    assert str(info.value).endswith("Details: escapes")
    assert shared.getvalue() == ""


def test_classify_is_total() -> None:
    err = ValueError("x")

    assert classify(None) == (CaptureResult.NONE, None)
    assert classify(err) == (CaptureResult.TYPED_ERROR, err)

    result, wrapped = classify(42)
    assert result == CaptureResult.OTHER
    assert "42" in str(wrapped)

    result, wrapped = classify("boom")
    assert result == CaptureResult.OTHER
    assert str(wrapped) == "Error: boom"


def test_custom_capture_receives_payload_and_stream(shared: io.StringIO) -> None:
    seen: list[object] = []

    def handler(payload: object, stream: io.StringIO) -> None:
        seen.append(payload)
        stream.write(f"custom: {payload}\n")

    with custom_capture(handler):
        panic("raw")

    assert seen == ["raw"]
    assert shared.getvalue() == "custom: raw\n"


def test_custom_capture_skipped_without_signal(shared: io.StringIO) -> None:
    seen: list[object] = []
    with custom_capture(lambda payload, stream: seen.append(payload)):
        on_err(None)
    assert seen == []


def test_guard_returns_value_or_default(shared: io.StringIO) -> None:
    def boom() -> int:
        on_err(ValueError("nope"))
        return 1

    assert guard("ok", lambda: 3) == 3
    assert guard("bad", boom, default=9) == 9
    assert shared.getvalue() == "Panic caught in func: bad, err: nope\n"


def test_recovers_decorator_with_injected_sink(shared: io.StringIO) -> None:
    buf = io.StringIO()
    sink = SharedSink(buf)

    @recovers(default=-1, sink=sink)
    def parse(text: str) -> int:
        if not text.isdigit():
            on_err(ValueError(f"bad: {text}"))
        return int(text)

    assert parse("12") == 12
    assert parse("x") == -1
    assert buf.getvalue().endswith("parse, err: bad: x\n")
    assert shared.getvalue() == ""


def test_recovers_uses_set_returns(shared: io.StringIO) -> None:
    @recovers("fallback", set_returns=lambda: "fallback value")
    def work() -> str:
        panic("gone")
        return "never"

    assert work() == "fallback value"
    assert shared.getvalue() == "Panic caught in func: fallback, err: gone\n"


def test_concurrent_captures_do_not_interleave(shared: io.StringIO) -> None:
    def worker(n: int) -> None:
        for i in range(50):
            with log(f"worker{n}"):
                on_err(ValueError(f"failure {i}"))

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    lines = shared.getvalue().splitlines()
    assert len(lines) == 400
    for line in lines:
        assert line.startswith("Panic caught in func: worker")
        assert ", err: failure " in line


def test_reused_slot_is_cleared_by_a_clean_run(shared: io.StringIO) -> None:
    slot = ErrorSlot()

    with log_err("reuse", slot):
        on_err(ValueError("first"))
    assert isinstance(slot.err, ValueError)
    assert slot.failure is not None

    with log_err("reuse", slot):
        on_err(None)

    assert slot.err is None
    assert slot.result == CaptureResult.NONE
    assert slot.label is None
    assert slot.failure is None
    assert not slot


def test_shared_capture_keeps_doom_ordinal(shared: io.StringIO) -> None:
    dc = DoomContext("inner", stream=io.StringIO())

    with log_err("outer") as slot:
        dc.on_err(None)
        dc.on_err(ValueError("second check"))

    assert slot.failure is not None
    assert slot.failure.ordinal == 2
    assert shared.getvalue() == "Panic caught in func: outer, err: second check\n"
