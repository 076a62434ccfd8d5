"""Tests for the stateful message state machine driver."""

import logging
from unittest.mock import Mock

import pytest

from message_dump_parser.extraction import MessageStateMachine, Phase
from message_dump_parser.shared import DiagnosticSeverity, ExtractorConfig
from message_dump_parser.tokenization import tokenize

SCENARIO_A = (
    "<FileDump><Message><From>Joe.doe@gmail.com</From>"
    "<Message>Hi Jane</Message></Message></FileDump>"
)
SCRIPT_DUMP = (
    "<FileDump><Message><From>a@b.c</From>"
    "<Message>Hi,<script>alert(1)</script>bye</Message></Message></FileDump>"
)
INVALID_DUMP = "<FileDump><Message><Subject>x</Subject></Message></FileDump>"


class TestMessageStateMachine:
    """Tests for running documents through the machine."""

    def test_run_emits_records_and_completes(self):
        """Test records, completion and final state of a valid dump."""
        machine = MessageStateMachine()

        steps = list(machine.run(tokenize(SCENARIO_A)))

        assert [step.record for step in steps if step.record] == [
            {"From": "Joe.doe@gmail.com", "Message": "Hi Jane"}
        ]
        assert machine.completed
        assert machine.halted
        assert machine.phase is Phase.ZERO

    def test_run_stops_at_error(self):
        """Test that run yields nothing after the failing step."""
        machine = MessageStateMachine()

        steps = list(machine.run(tokenize(INVALID_DUMP)))

        assert steps[-1].error is not None
        assert len(steps) == 3
        assert not machine.completed

    def test_process_after_halt_raises(self):
        """Test that a finished machine must be reset."""
        machine = MessageStateMachine()
        list(machine.run(tokenize(SCENARIO_A)))

        with pytest.raises(RuntimeError, match="reset"):
            machine.process(tokenize("<FileDump/>")[0])

    def test_reset_allows_reuse(self):
        """Test that reset starts a new document."""
        machine = MessageStateMachine()
        list(machine.run(tokenize(INVALID_DUMP)))
        machine.reset()

        steps = list(machine.run(tokenize(SCENARIO_A)))

        assert machine.completed
        assert sum(1 for step in steps if step.record) == 1
        assert machine.metrics.records_emitted == 1

    def test_configured_schema(self):
        """Test that tag names come from the configuration."""
        config = ExtractorConfig(root_tag="Dump", record_tag="Msg", field_tags=("Sender",))
        machine = MessageStateMachine(config)

        steps = list(machine.run(tokenize("<Dump><Msg><Sender>a</Sender></Msg></Dump>")))

        assert [step.record for step in steps if step.record] == [{"Sender": "a"}]
        assert machine.completed


class TestMachineMetrics:
    """Tests for run metrics."""

    def test_counters(self):
        """Test token, record, field and depth counters."""
        machine = MessageStateMachine()
        events = tokenize(SCENARIO_A)

        list(machine.run(events))

        metrics = machine.metrics
        assert metrics.tokens_processed == len(events)
        assert metrics.records_emitted == 1
        assert metrics.fields_committed == 2
        assert metrics.max_depth == 3
        assert metrics.sanitized_tags == 0

    def test_sanitized_tags(self):
        """Test that escaped foreign tags are counted."""
        machine = MessageStateMachine()
        list(machine.run(tokenize(SCRIPT_DUMP)))
        assert machine.metrics.sanitized_tags == 1
        assert machine.metrics.max_depth == 4


class TestMachineDiagnostics:
    """Tests for diagnostic mode."""

    def test_sink_not_called_without_diagnostics(self):
        """Test that the sink is idle unless diagnostic mode is on."""
        sink = Mock()
        machine = MessageStateMachine(ExtractorConfig(), diagnostic_sink=sink)

        list(machine.run(tokenize(SCENARIO_A)))

        sink.assert_not_called()

    def test_sink_called_per_step(self):
        """Test one diagnostic entry per processed event."""
        sink = Mock()
        machine = MessageStateMachine(ExtractorConfig(diagnostics=True), diagnostic_sink=sink)
        events = tokenize(SCENARIO_A)

        list(machine.run(events))

        assert sink.call_count == len(events)
        entries = [call.args[0] for call in sink.call_args_list]
        assert all(entry.component == "message_state_machine" for entry in entries)
        assert all(entry.severity is DiagnosticSeverity.DEBUG for entry in entries)
        assert entries[2].message == 'State: MESSAGE, found message tag field "From"'
        assert entries[2].details["from_phase"] == "MESSAGE"
        assert entries[2].details["to_phase"] == "MESSAGE_FIELD"
        assert entries[4].details["accumulator"] == ""
        assert entries[-1].message == "Finished"

    def test_error_entry(self):
        """Test that the failing step is reported at error severity."""
        sink = Mock()
        machine = MessageStateMachine(ExtractorConfig(diagnostics=True), diagnostic_sink=sink)

        list(machine.run(tokenize(INVALID_DUMP)))

        entry = sink.call_args_list[-1].args[0]
        assert entry.severity is DiagnosticSeverity.ERROR
        assert entry.message == "State: MESSAGE, unexpected field <Subject>"
        assert entry.position == {"line": 1, "column": 20, "offset": 19}

    def test_sink_receives_full_accumulator(self):
        """Test that the sink receives the complete accumulator snapshot."""
        sink = Mock()
        machine = MessageStateMachine(ExtractorConfig(diagnostics=True), diagnostic_sink=sink)
        body = "x" * 500

        list(machine.run(tokenize(
            f"<FileDump><Message><Message>{body}</Message></Message></FileDump>"
        )))

        snapshots = [call.args[0].details["accumulator"] for call in sink.call_args_list]
        assert max(len(snapshot) for snapshot in snapshots) == 500
        assert body in snapshots

    def test_logged_accumulator_is_shortened(self, caplog):
        """Test that the default log sink shortens long snapshots."""
        machine = MessageStateMachine(ExtractorConfig(diagnostics=True))
        body = "x" * 500

        with caplog.at_level(logging.DEBUG):
            list(machine.run(tokenize(
                f"<FileDump><Message><Message>{body}</Message></Message></FileDump>"
            )))

        snapshots = [
            record.accumulator for record in caplog.records if hasattr(record, "accumulator")
        ]
        assert "x" * 200 + "..." in snapshots
        assert body not in snapshots

    def test_failing_sink_does_not_change_outcome(self, caplog):
        """Test that sink exceptions are logged and parsing continues."""
        sink = Mock(side_effect=RuntimeError("sink down"))
        machine = MessageStateMachine(ExtractorConfig(diagnostics=True), diagnostic_sink=sink)

        with caplog.at_level(logging.WARNING):
            steps = list(machine.run(tokenize(SCENARIO_A)))

        assert machine.completed
        assert sum(1 for step in steps if step.record) == 1
        assert any(record.getMessage() == "Diagnostic sink failed" for record in caplog.records)

    def test_default_sink_logs_at_debug(self, caplog):
        """Test that diagnostics go to the debug log when no sink is given."""
        machine = MessageStateMachine(ExtractorConfig(diagnostics=True))

        with caplog.at_level(logging.DEBUG, logger="message_dump_parser.extraction.machine"):
            list(machine.run(tokenize(SCENARIO_A)))

        messages = [record.getMessage() for record in caplog.records]
        assert 'State: MESSAGE, found message tag field "From"' in messages

    def test_failure_logged_at_error(self, caplog):
        """Test that structural errors are logged."""
        machine = MessageStateMachine()

        with caplog.at_level(logging.ERROR, logger="message_dump_parser.extraction.machine"):
            list(machine.run(tokenize(INVALID_DUMP)))

        record = caplog.records[-1]
        assert record.getMessage() == "Extraction failed"
        assert record.reason == "unexpected field <Subject>"
