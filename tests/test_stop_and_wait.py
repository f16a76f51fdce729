"""
Unit tests for the Stop-and-Wait protocol halves.
"""

import numpy as np
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.arq.errors import InvalidConfiguration
from src.arq.frame import Frame, Acknowledgment, toggle_bit
from src.arq.receiver import StopAndWaitReceiver, ReceiverPhase
from src.arq.run_config import RunConfiguration, clamp_probability
from src.arq.sender import StopAndWaitSender, SenderPhase
from src.arq.transaction import TransactionRegistry


class TestFrame:
    """Tests for Frame and Acknowledgment."""

    def test_frame_creation(self):
        """Test creating a data frame."""
        frame = Frame(sequence_bit=1, payload="Data-2", transaction_id=3)

        assert frame.sequence_bit == 1
        assert frame.payload == "Data-2"
        assert frame.transaction_id == 3
        assert not frame.is_retransmit

    def test_invalid_sequence_bit(self):
        """Test that only 0 and 1 are accepted as sequence bits."""
        with pytest.raises(ValueError):
            Frame(sequence_bit=2, payload="Data-1", transaction_id=1)
        with pytest.raises(ValueError):
            Acknowledgment(sequence_bit=-1, transaction_id=1)

    def test_negative_transaction_id(self):
        with pytest.raises(ValueError):
            Acknowledgment(sequence_bit=0, transaction_id=-1)

    def test_frames_are_immutable(self):
        """Test that frames cannot be modified after creation."""
        frame = Frame(sequence_bit=0, payload="Data-1", transaction_id=1)
        with pytest.raises(AttributeError):
            frame.sequence_bit = 1

    def test_toggle_bit(self):
        assert toggle_bit(0) == 1
        assert toggle_bit(1) == 0

    def test_repr(self):
        frame = Frame(sequence_bit=0, payload="Data-1", transaction_id=4, is_retransmit=True)
        assert "retransmit" in repr(frame)
        assert "tx=4" in repr(Acknowledgment(sequence_bit=0, transaction_id=4))


class TestTransactionRegistry:
    """Tests for transaction id bookkeeping."""

    def test_ids_strictly_increase(self):
        """Test that every attempt gets a fresh, larger id."""
        registry = TransactionRegistry()
        ids = [registry.begin_transaction() for _ in range(5)]

        assert ids == [1, 2, 3, 4, 5]
        assert registry.current_id == 5

    def test_only_current_unhandled_id_is_valid(self):
        """Test ACK validity rules."""
        registry = TransactionRegistry()
        first = registry.begin_transaction()
        assert registry.is_valid(first)

        second = registry.begin_transaction()
        assert not registry.is_valid(first)
        assert registry.is_valid(second)

        registry.mark_handled(second)
        assert not registry.is_valid(second)
        assert registry.is_current(second)

    def test_initial_state_rejects_everything(self):
        registry = TransactionRegistry()
        assert not registry.is_valid(0)
        assert not registry.is_valid(1)

    def test_reset(self):
        registry = TransactionRegistry()
        registry.begin_transaction()
        registry.mark_handled(1)
        registry.reset()

        assert registry.next_id == 1
        assert registry.current_id == 0
        assert registry.last_handled_id == 0


class TestStopAndWaitReceiver:
    """Tests for the receiver half."""

    def test_in_order_frame_accepted(self):
        """Test that the expected bit is accepted and acknowledged."""
        delivered = []
        receiver = StopAndWaitReceiver(on_data_delivered=delivered.append)

        ack, accepted = receiver.receive_frame(Frame(0, "Data-1", 1))

        assert accepted
        assert ack.sequence_bit == 0
        assert ack.transaction_id == 1
        assert ack.for_payload == "Data-1"
        assert receiver.state.expected_sequence_bit == 1
        assert receiver.state.phase == ReceiverPhase.ACK_IN_ORDER
        assert delivered == ["Data-1"]

    def test_duplicate_frame_reacknowledged(self):
        """Test that a repeated frame gets the previously accepted bit."""
        receiver = StopAndWaitReceiver()
        receiver.receive_frame(Frame(0, "Data-1", 1))

        # ACK for Data-1 was lost; the sender resends it
        ack, accepted = receiver.receive_frame(Frame(0, "Data-1", 2, is_retransmit=True))

        assert not accepted
        assert ack.sequence_bit == 0
        assert ack.transaction_id == 2
        assert ack.for_payload == "Data-1"
        assert receiver.state.expected_sequence_bit == 1
        assert receiver.delivered == ["Data-1"]
        assert receiver.duplicate_frames == 1

    def test_duplicate_before_any_acceptance(self):
        """Test re-ACK of a bit-1 frame while still expecting bit 0."""
        receiver = StopAndWaitReceiver()
        ack, accepted = receiver.receive_frame(Frame(1, "Data-0", 1))

        assert not accepted
        assert ack.sequence_bit == 1
        assert ack.for_payload == "previous"
        assert receiver.delivered == []

    def test_alternating_sequence(self):
        receiver = StopAndWaitReceiver()
        for i in range(4):
            _, accepted = receiver.receive_frame(Frame(i % 2, f"Data-{i + 1}", i + 1))
            assert accepted

        assert receiver.delivered == ["Data-1", "Data-2", "Data-3", "Data-4"]
        assert receiver.state.expected_sequence_bit == 0

    def test_reset(self):
        receiver = StopAndWaitReceiver()
        receiver.receive_frame(Frame(0, "Data-1", 1))
        receiver.reset()

        assert receiver.state.expected_sequence_bit == 0
        assert receiver.delivered == []
        assert receiver.get_statistics()['frames_received'] == 0


class TestStopAndWaitSender:
    """Tests for the sender half."""

    def test_build_frame_marks_outstanding(self):
        """Test that sending sets up the outstanding attempt."""
        sender = StopAndWaitSender(["Data-1", "Data-2"])
        frame = sender.build_frame(transaction_id=1)

        assert frame.sequence_bit == 0
        assert frame.payload == "Data-1"
        assert sender.state.awaiting_ack
        assert sender.state.active_transaction_id == 1
        assert sender.state.active_sequence_bit == 0
        assert not sender.can_send()
        assert sender.can_send(is_retransmit=True)

    def test_complete_exchange_toggles_and_advances(self):
        sender = StopAndWaitSender(["Data-1", "Data-2"])
        sender.build_frame(1)
        sender.complete_exchange()

        assert sender.state.current_sequence_bit == 1
        assert sender.state.next_index == 1
        assert not sender.state.awaiting_ack
        assert sender.state.phase == SenderPhase.ACK_ACCEPTED
        assert sender.next_payload == "Data-2"

    def test_retransmission_keeps_bit_and_payload(self):
        """Test that a resend reuses the same bit under a new id."""
        sender = StopAndWaitSender(["Data-1"])
        sender.build_frame(1)
        sender.mark_timeout()

        assert sender.state.timeout_expired
        assert sender.state.phase == SenderPhase.TIMEOUT

        frame = sender.build_frame(2, is_retransmit=True)
        assert frame.sequence_bit == 0
        assert frame.payload == "Data-1"
        assert frame.is_retransmit
        assert not sender.state.timeout_expired
        assert sender.frames_sent == 2

    def test_matches_outstanding(self):
        sender = StopAndWaitSender(["Data-1"])
        assert not sender.matches_outstanding(0)

        sender.build_frame(1)
        assert sender.matches_outstanding(0)
        assert not sender.matches_outstanding(1)

    def test_no_pending_after_last_frame(self):
        sender = StopAndWaitSender(["Data-1"])
        sender.build_frame(1)
        sender.complete_exchange()

        assert not sender.has_pending
        assert sender.next_payload is None
        assert not sender.can_send()


class TestRunConfiguration:
    """Tests for configuration validation."""

    def test_defaults(self):
        config = RunConfiguration(frame_count=5).validated()

        assert config.expected_rtt_ms == 3200
        assert config.timeout_ms == pytest.approx(7200)
        assert config.payloads() == ["Data-1", "Data-2", "Data-3", "Data-4", "Data-5"]

    def test_probabilities_clamped(self):
        """Test that out-of-range probabilities are clamped, not rejected."""
        config = RunConfiguration(
            frame_count=1,
            frame_loss_probability=1.7,
            ack_loss_probability=-0.2
        ).validated()

        assert config.frame_loss_probability == 1.0
        assert config.ack_loss_probability == 0.0

    def test_nan_probability_treated_as_zero(self):
        assert clamp_probability(float('nan')) == 0.0

    @pytest.mark.parametrize("frame_count", [0, -3, 2.5, "5", True])
    def test_invalid_frame_count(self, frame_count):
        with pytest.raises(InvalidConfiguration):
            RunConfiguration(frame_count=frame_count).validated()

    @pytest.mark.parametrize("factor", [0, -1.0, float('inf'), float('nan')])
    def test_invalid_timeout_factor(self, factor):
        with pytest.raises(InvalidConfiguration):
            RunConfiguration(frame_count=1, timeout_factor=factor).validated()

    @pytest.mark.parametrize("field", ["timeout_factor", "transit_duration_ms",
                                       "frame_loss_probability", "ack_loss_probability"])
    def test_non_numeric_value_rejected(self, field):
        """Test that None or text in a numeric field is a configuration error."""
        for bad in (None, "fast"):
            with pytest.raises(InvalidConfiguration):
                RunConfiguration(frame_count=1, **{field: bad}).validated()

    def test_numpy_scalars_accepted(self):
        config = RunConfiguration(
            frame_count=np.int64(3),
            timeout_factor=np.float64(1.5),
            frame_loss_probability=np.float32(0.25)
        ).validated()

        assert config.frame_count == 3
        assert type(config.frame_count) is int
        assert config.payloads() == ["Data-1", "Data-2", "Data-3"]
        assert config.frame_loss_probability == 0.25

    def test_invalid_configuration_is_value_error(self):
        with pytest.raises(ValueError):
            RunConfiguration(frame_count=1, transit_duration_ms=0).validated()

    def test_noiseless_ignores_loss(self):
        config = RunConfiguration(frame_count=1, frame_loss_probability=0.5,
                                  ack_loss_probability=0.5, noisy=False)

        assert config.effective_frame_loss == 0.0
        assert config.effective_ack_loss == 0.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
