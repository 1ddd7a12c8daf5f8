"""Tests for classify.py — column rules, role tags and node summaries."""

from __future__ import annotations

import pytest

from audiograph.classify import (
    COLUMN_COUNT,
    COLUMN_LABELS,
    classify_column,
    column,
    node_role,
    node_summary,
    port_label,
)
from audiograph.graph import Direction, Node, Port


def make_node(name: str, media_class: str = "", **properties) -> Node:
    return Node(id=1, name=name, media_class=media_class, properties=properties)


# ─── Column Rules ─────────────────────────────────────────────────────────────


class TestClassifyColumn:
    @pytest.mark.parametrize(
        "name,media_class,expected",
        [
            ("fpp_input_ig1", "Audio/Sink", 1),
            ("fpp_loopback_ig2", "Audio/Sink", 1),
            ("input.fpp_loopback_ig1", "Audio/Sink", 1),
            ("output.fpp_loopback_ig1", "Stream/Output/Audio", 1),
            ("fpp_group_main", "Audio/Sink", 2),
            ("fpp_fx_g1_s3", "Audio/Sink", 3),
            ("fpp_eq_card0", "Audio/Sink", 3),
            ("alsa_output.usb-Generic", "Audio/Sink", 4),
            ("aes67_send", "Stream/Input/Audio", 4),
            ("alsa_input.mic", "Audio/Source", 0),
            ("fppd", "Stream/Output/Audio", 0),
            ("bluez_sink.speaker", "Audio/Sink", 4),
            ("midi_bridge", "Midi/Bridge", 0),
            ("", "", 0),
        ],
    )
    def test_rule_table(self, name, media_class, expected):
        assert classify_column(name, media_class) == expected

    def test_name_rules_beat_media_class(self):
        """A filter-chain sink is an effect even though it is an Audio/Sink."""
        assert classify_column("fpp_fx_x", "Audio/Sink") == 3
        assert classify_column("fpp_group_x", "Audio/Source") == 2

    def test_hw_output_requires_alsa_prefix_before_source_rule(self):
        """A Stream/Input/Audio node goes to HW Outputs regardless of name."""
        assert classify_column("anything", "Stream/Input/Audio") == 4

    def test_column_uses_node_fields(self):
        assert column(make_node("fpp_group_a", "Audio/Sink")) == 2

    def test_deterministic_and_in_range(self):
        """Repeated calls agree and never leave 0..4."""
        samples = [
            ("fpp_input_x", ""),
            ("output.fpp_group_y", "Stream/Output/Audio"),
            ("alsa_output.z", "Audio/Sink"),
            ("weird", "Video/Source"),
            ("alsa_input.q", "Audio/Source"),
        ]
        for name, mc in samples:
            first = classify_column(name, mc)
            assert classify_column(name, mc) == first
            assert 0 <= first < COLUMN_COUNT

    def test_none_tolerated(self):
        """Missing name or media class fall through to the default column."""
        assert classify_column(None, None) == 0  # type: ignore[arg-type]

    def test_column_labels(self):
        assert COLUMN_LABELS == ("Input Sources", "Input Groups", "Output Groups", "Effects", "HW Outputs")


# ─── Roles ────────────────────────────────────────────────────────────────────


class TestNodeRole:
    @pytest.mark.parametrize(
        "name,media_class,expected",
        [
            ("fpp_input_ig1", "", "input-group"),
            ("fpp_group_main", "Audio/Sink", "output-group"),
            ("fpp_fx_g1_s3", "Audio/Sink", "effect"),
            ("fpp_fx_g1_s3_out", "Stream/Output/Audio", "internal-stream"),
            ("output.fpp_group_main_hdmi", "Stream/Output/Audio", "internal-stream"),
            ("alsa_output.usb", "Audio/Sink", "hw-output"),
            ("alsa_input.mic", "Audio/Source", "source"),
            ("aes67_send", "Stream/Input/Audio", "capture"),
            ("fppd", "Stream/Output/Audio", "stream"),
            ("custom_sink", "Audio/Sink", "sink"),
            ("thing", "", "other"),
        ],
    )
    def test_roles(self, name, media_class, expected):
        assert node_role(make_node(name, media_class)) == expected


# ─── Summaries ────────────────────────────────────────────────────────────────


class TestNodeSummary:
    def test_effect_delay_and_eq(self):
        node = make_node("fpp_fx_g1_s3", "Audio/Sink", **{"fpp.delay.ms": 12, "fpp.eq.enabled": True})
        assert node_summary(node) == "delay 12 ms · EQ on"

    def test_effect_zero_delay(self):
        assert node_summary(make_node("fpp_fx_a", "Audio/Sink", **{"fpp.delay.ms": 0})) == "no delay"

    def test_group_members(self):
        node = make_node("fpp_group_main", "Audio/Sink", **{"fpp.group.members": 3, "fpp.group.latencyCompensate": True})
        assert node_summary(node) == "3 members · latency comp"

    def test_mix_bus_default(self):
        assert node_summary(make_node("fpp_input_ig1")) == "mix bus"

    def test_mix_bus_counts(self):
        node = make_node("fpp_input_ig1", **{"fpp.inputGroup.members": 2, "fpp.inputGroup.outputs": 1})
        assert node_summary(node) == "2 sources · → 1 outputs"

    def test_alsa_device(self):
        node = make_node(
            "alsa_output.usb",
            "Audio/Sink",
            **{"audio.format": "S16LE", "audio.rate": 48000, "audio.channels": 2},
        )
        assert node_summary(node) == "S16LE · 48.0 kHz · 2 ch"

    def test_stream(self):
        node = make_node("fppd", "Stream/Output/Audio", **{"audio.channels": 2, "application.name": "fppd"})
        assert node_summary(node) == "2 ch · fppd"

    def test_unknown_empty(self):
        assert node_summary(make_node("thing", "Video/Sink")) == ""


class TestPortLabel:
    def test_channel_preferred(self):
        assert port_label(Port(id=1, node_id=1, direction=Direction.Input, name="playback_FL", channel="FL")) == "FL"

    def test_prefix_stripped(self):
        assert port_label(Port(id=1, node_id=1, direction=Direction.Output, name="output_AUX0")) == "AUX0"
