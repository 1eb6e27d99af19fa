from __future__ import annotations

import threading
import time

import loopmod


def test_loop_is_the_controller():
    assert loopmod.Loop is loopmod.LoopController


def test_loop_uses_default_dispatcher_drained_by_run_pending():
    ran_on = []
    loop = loopmod.Loop(
        lambda: ran_on.append(threading.current_thread()),
        lambda: 0.01,
        config=loopmod.LoopConfig(worker_thread_name="loop-timer-default"),
    )
    assert loop.dispatcher is loopmod.get_default_dispatcher()

    loop.start()
    try:
        deadline = time.monotonic() + 2.0
        while len(ran_on) < 2 and time.monotonic() < deadline:
            loopmod.run_pending(timeout=0.01)
    finally:
        loop.stop()
    loopmod.run_pending()

    assert len(ran_on) >= 2
    assert set(ran_on) == {threading.main_thread()}
