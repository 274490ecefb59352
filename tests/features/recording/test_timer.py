import asyncio

from livescribe.features.recording.service.timer import ElapsedTimer, format_elapsed


def test_format_elapsed():
    assert format_elapsed(0) == "00:00"
    assert format_elapsed(125) == "02:05"
    assert format_elapsed(3600) == "60:00"


def test_tick_only_counts_while_running():
    timer = ElapsedTimer(interval=None)
    timer.tick()
    assert timer.elapsed_seconds == 0

    timer.start()
    timer.tick()
    timer.tick()
    timer.stop()
    timer.tick()
    assert timer.elapsed_seconds == 2

    timer.reset()
    assert timer.elapsed_seconds == 0
    assert not timer.running


def test_background_ticks():
    async def run():
        timer = ElapsedTimer(interval=0.01)
        timer.start()
        await asyncio.sleep(0.1)
        timer.stop()
        counted = timer.elapsed_seconds
        await asyncio.sleep(0.05)
        return counted, timer.elapsed_seconds

    counted, later = asyncio.run(run())
    assert counted >= 3
    assert later == counted
