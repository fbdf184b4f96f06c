"""
Unit Tests for TIF flag comparison
"""

import pytest
import os
import random

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from tif import (
    TIF_DESC, TIF_ID_MATCH, TIF_IP_MATCHED, TIF_SQRL_DISABLED,
    TIF_COMMAND_FAILED, TIF_CLIENT_FAILURE, TIF_BAD_ID_ASSOCIATION,
    TIF_PREVIOUS_ID_MATCH, TIFMismatch, describe_tif, tif_compare
)


class TestRegistry:
    """Test the flag registry"""

    def test_single_bit_masks(self):
        """Test that every registered flag is one bit"""
        for bit in TIF_DESC:
            assert bit and bit & (bit - 1) == 0

    def test_required_flags_described(self):
        """Test that the flags used by the test suite have descriptions"""
        for bit in (TIF_IP_MATCHED, TIF_ID_MATCH, TIF_PREVIOUS_ID_MATCH,
                    TIF_SQRL_DISABLED, TIF_COMMAND_FAILED, TIF_CLIENT_FAILURE,
                    TIF_BAD_ID_ASSOCIATION):
            assert TIF_DESC[bit]

    def test_describe_tif(self):
        """Test descriptions of a mask in bit order"""
        assert describe_tif(TIF_IP_MATCHED | TIF_ID_MATCH) == ["ID Matched", "IP Matched"]
        assert describe_tif(0) == []


class TestCompare:
    """Test expected vs actual comparison"""

    def test_equal_masks(self):
        """Test that identical masks produce no mismatches"""
        for mask in (0, TIF_IP_MATCHED, 0xC5, 0xFFFFFFFF):
            assert tif_compare(mask, mask) is None

    def test_missing_id_match(self):
        """Test a single missing flag"""
        result = tif_compare(TIF_IP_MATCHED | TIF_ID_MATCH, TIF_IP_MATCHED)
        assert result == [TIFMismatch("ID Matched", actual=False, expected=True)]

    def test_unexpected_flags_in_bit_order(self):
        """Test that mismatches are reported in ascending bit order"""
        result = tif_compare(TIF_IP_MATCHED,
                             TIF_CLIENT_FAILURE | TIF_COMMAND_FAILED)
        assert [m.description for m in result] == [
            "IP Matched", "Command Failed", "Client Failure"
        ]
        assert result[0].actual is False and result[0].expected is True
        assert result[1].actual is True and result[1].expected is False

    def test_unregistered_bits_ignored(self):
        """Test that reserved bits never produce mismatches"""
        assert tif_compare(0, 1 << 20) is None
        assert tif_compare(1 << 31, 0) is None

    def test_symmetry(self):
        """Test that swapping arguments swaps values but not descriptions"""
        rng = random.Random(7)
        for _ in range(50):
            a = rng.getrandbits(12)
            b = rng.getrandbits(12)
            forward = tif_compare(a, b) or []
            backward = tif_compare(b, a) or []
            assert [m.description for m in forward] == [m.description for m in backward]
            for f, r in zip(forward, backward):
                assert f.actual == r.expected
                assert f.expected == r.actual

    def test_mismatch_message(self):
        """Test the human readable form of a mismatch"""
        mismatch = TIFMismatch("SQRL Disabled", actual=True, expected=False)
        assert str(mismatch) == "SQRL Disabled is True expected False"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
