from __future__ import annotations

import io

import pytest

from sink.netdata import NetdataSink, SinkError


def _declared_sink(stream: io.StringIO) -> NetdataSink:
    sink = NetdataSink(stream)
    sink.declare_chart(
        chart_id="Smartplugs.power",
        name="Power",
        title="Power",
        units="watts",
        family="power",
        context="smartplugpower.power",
        chart_type="area",
        priority=90000,
        update_every=1,
    )
    sink.declare_dimension("Smartplugs.power", "10_0_0_1_Power", "Kettle (10.0.0.1)")
    return sink


def test_declarations_follow_plugin_protocol() -> None:
    stream = io.StringIO()

    _declared_sink(stream)

    assert stream.getvalue().splitlines() == [
        'CHART Smartplugs.power "Power" "Power" "watts" "power" "smartplugpower.power" area 90000 1',
        'DIMENSION 10_0_0_1_Power "Kettle (10.0.0.1)" absolute 1 1',
    ]


def test_commit_flushes_buffered_values_once() -> None:
    stream = io.StringIO()
    sink = _declared_sink(stream)
    stream.truncate(0)
    stream.seek(0)

    sink.feed("Smartplugs.power", "10_0_0_1_Power", 12)
    assert stream.getvalue() == ""
    sink.commit("Smartplugs.power")
    sink.commit("Smartplugs.power")

    assert stream.getvalue().splitlines() == [
        "BEGIN Smartplugs.power",
        "SET 10_0_0_1_Power = 12",
        "END",
        "BEGIN Smartplugs.power",
        "END",
    ]


def test_feed_requires_declaration() -> None:
    sink = _declared_sink(io.StringIO())

    with pytest.raises(SinkError):
        sink.feed("Smartplugs.voltage", "10_0_0_1_Voltage", 1)
    with pytest.raises(SinkError):
        sink.feed("Smartplugs.power", "10_0_0_2_Power", 1)
    with pytest.raises(SinkError):
        sink.commit("Smartplugs.voltage")


def test_quotes_inside_names_are_neutralized() -> None:
    stream = io.StringIO()
    sink = _declared_sink(stream)

    sink.declare_dimension("Smartplugs.power", "x_Power", 'Bob\'s "best" plug (x)')

    assert stream.getvalue().splitlines()[-1] == (
        'DIMENSION x_Power "Bob\'s \'best\' plug (x)" absolute 1 1'
    )


def test_write_failure_raises_sink_error() -> None:
    class ClosedStream(io.StringIO):
        def write(self, text: str) -> int:
            raise BrokenPipeError("netdata went away")

    sink = NetdataSink(ClosedStream())

    with pytest.raises(SinkError, match="netdata went away"):
        sink.declare_chart("a.b", "B", "B", "u", "f", "c", "line", 1, 1)
