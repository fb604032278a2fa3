"""
Tests for region layout calculation.

The layout is the contract both sides agree on without negotiation, so
these tests pin down the offsets, the size invariants and the host/peer
mirror property.
"""

import pytest

from floppyio.config import DEFAULT_REGION_SIZE, Role
from floppyio.errors import ConfigError
from floppyio.protocol.layout import ChannelLayout, calculate_layout


# =============================================================================
# Size Invariants
# =============================================================================

class TestLayoutInvariants:
    """Buffer sizes and offsets for valid regions."""

    @pytest.mark.parametrize("size", [4, 6, 64, 1024, DEFAULT_REGION_SIZE, 1474560])
    @pytest.mark.parametrize("role", [Role.HOST, Role.PEER])
    def test_buffer_sizes(self, size, role):
        """Both buffers are R/2 - 1 bytes and fill the region with 2 control bytes."""
        layout = calculate_layout(size, role)
        assert layout.output_size == size // 2 - 1
        assert layout.input_size == size // 2 - 1
        assert layout.output_size + layout.input_size + 2 == size

    @pytest.mark.parametrize("size", [4, 64, DEFAULT_REGION_SIZE])
    def test_host_and_peer_are_mirrors(self, size):
        """Host output is peer input and vice versa, for buffers and control bytes."""
        host = calculate_layout(size, Role.HOST)
        peer = calculate_layout(size, Role.PEER)
        assert host.output_offset == peer.input_offset
        assert host.input_offset == peer.output_offset
        assert host.control_out_offset == peer.control_in_offset
        assert host.control_in_offset == peer.control_out_offset

    def test_default_host_offsets(self):
        """28K region matches the documented region map."""
        layout = calculate_layout(DEFAULT_REGION_SIZE, Role.HOST)
        assert layout.output_offset == 0x0000
        assert layout.input_offset == 0x37FF
        assert layout.input_offset + layout.input_size - 1 == 0x6FFD
        assert layout.control_out_offset == 0x6FFE
        assert layout.control_in_offset == 0x6FFF

    def test_ranges_do_not_overlap(self):
        """Every byte of the region belongs to exactly one range."""
        layout = calculate_layout(64, Role.PEER)
        owners = [0] * 64
        for start, size in [
            (layout.output_offset, layout.output_size),
            (layout.input_offset, layout.input_size),
            (layout.control_out_offset, 1),
            (layout.control_in_offset, 1),
        ]:
            for offset in range(start, start + size):
                owners[offset] += 1
        assert owners == [1] * 64

    def test_mirror_method(self):
        """mirror() returns the other role's layout."""
        host = calculate_layout(128, Role.HOST)
        assert host.mirror() == calculate_layout(128, Role.PEER)
        assert host.mirror().mirror() == host

    def test_layout_is_immutable(self):
        """Layouts cannot be modified after calculation."""
        layout = calculate_layout(64, Role.HOST)
        with pytest.raises(AttributeError):
            layout.output_size = 10


# =============================================================================
# Invalid Regions
# =============================================================================

class TestLayoutValidation:
    """Region sizes that cannot hold a channel."""

    @pytest.mark.parametrize("size", [0, 1, 2, 3, -8])
    def test_too_small(self, size):
        with pytest.raises(ConfigError, match="too small"):
            calculate_layout(size, Role.HOST)

    @pytest.mark.parametrize("size", [5, 65, 28671])
    def test_odd_size(self, size):
        with pytest.raises(ConfigError, match="even"):
            calculate_layout(size, Role.HOST)

    @pytest.mark.parametrize("size", [64.0, "64", True])
    def test_non_integer(self, size):
        with pytest.raises(ConfigError, match="integer"):
            calculate_layout(size, Role.HOST)


# =============================================================================
# Diagnostics
# =============================================================================

class TestLayoutDescribe:
    """Region map rendering."""

    def test_describe_lists_all_ranges(self):
        text = calculate_layout(DEFAULT_REGION_SIZE, Role.HOST).describe()
        assert "host" in text
        assert "0x0000 - 0x37FE  Output buffer" in text
        assert "0x37FF - 0x6FFD  Input buffer" in text
        assert "0x6FFE" in text
        assert "0x6FFF" in text

    def test_describe_is_sorted_by_offset(self):
        lines = calculate_layout(64, Role.PEER).describe().splitlines()[1:]
        assert lines[0].endswith("Input buffer")
        assert lines[1].endswith("Output buffer")
        assert lines[2].endswith("Input control byte")
        assert lines[3].endswith("Output control byte")

    def test_layout_type(self):
        assert isinstance(calculate_layout(64, Role.HOST), ChannelLayout)
