import threading
import unittest
from datetime import datetime, timezone

from zeniagent.capabilities import (
    Document,
    InMemoryWorkspace,
    RecordingNavigator,
    UserProfile,
    build_in_memory_capabilities,
)
from zeniagent.exceptions import (
    ContentPolicyError,
    ConversationBusyError,
    NoPendingActionError,
    PendingActionConflictError,
    ReasoningUnavailableError,
    UnknownConversationError,
)
from zeniagent.services.assistant import CONTENT_POLICY_REPLY, AssistantOrchestrator
from zeniagent.services.confirmation_gate import STATE_AWAITING_CONFIRMATION, STATE_IDLE
from zeniagent.services.reasoning_client import ReasoningConfig

_CONFIG = ReasoningConfig(provider="openai", model="gpt-4o", api_key="sk-test", timeout_seconds=5)


class _ScriptedClient:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls: list[dict[str, object]] = []

    def complete(self, history, document=None, snapshot=None):
        self.calls.append({"history": list(history), "document": document, "snapshot": snapshot})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class _CountingExecutor:
    def __init__(self, inner):
        self.inner = inner
        self.calls = 0

    def execute(self, action):
        self.calls += 1
        return self.inner.execute(action)


def _delete_reply(confirmation_required=True):
    flag = "true" if confirmation_required else "false"
    return (
        "Sure, I can delete Transcript.pdf for you.\n"
        "```action\n"
        '{"type": "delete-document", "params": {"documentId": "d1", "documentName": "Transcript.pdf"}, '
        f'"confirmationRequired": {flag}, "confirmationMessage": "Delete Transcript.pdf?"}}\n'
        "```"
    )


class AssistantFlowTests(unittest.TestCase):
    def setUp(self):
        self.workspace = InMemoryWorkspace(profile=UserProfile(id="u1", first_name="Sam"))
        self.workspace.add_document(
            Document(
                id="d1",
                name="Transcript.pdf",
                kind="pdf",
                page_count=2,
                file_size=1024,
                created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
                content="Grades: A",
            )
        )
        self.navigator = RecordingNavigator()
        self.caps = build_in_memory_capabilities(self.workspace, navigator=self.navigator)

    def _orchestrator(self, replies):
        client = _ScriptedClient(replies)
        orchestrator = AssistantOrchestrator(
            self.caps,
            reasoning=_CONFIG,
            client_factory=lambda cfg: client,
        )
        executor = _CountingExecutor(orchestrator._executor)
        orchestrator._executor = executor
        return orchestrator, client, executor

    def test_delete_waits_for_confirmation_then_runs(self):
        orchestrator, client, executor = self._orchestrator([_delete_reply()])
        conversation = orchestrator.create_conversation()

        turn = orchestrator.send_message(conversation.id, "Please delete my transcript")

        self.assertEqual([m.role for m in turn.messages], ["user", "assistant"])
        self.assertEqual(turn.messages[1].content, "Sure, I can delete Transcript.pdf for you.")
        self.assertEqual(turn.state, STATE_AWAITING_CONFIRMATION)
        self.assertEqual(turn.pending.prompt, "Delete 'Transcript.pdf'? This cannot be undone.")
        self.assertIsNotNone(self.workspace.get_document("d1"))
        self.assertEqual(executor.calls, 0)
        self.assertIsNotNone(client.calls[0]["snapshot"])

        confirmed = orchestrator.confirm_pending(conversation.id)

        self.assertIsNone(self.workspace.get_document("d1"))
        self.assertEqual(executor.calls, 1)
        self.assertEqual(len(confirmed.messages), 1)
        self.assertTrue(confirmed.messages[0].content.startswith("✅"))
        self.assertIn("Transcript.pdf", confirmed.messages[0].content)
        self.assertEqual(confirmed.state, STATE_IDLE)

    def test_cancel_leaves_document_and_never_calls_executor(self):
        orchestrator, _, executor = self._orchestrator([_delete_reply()])
        conversation = orchestrator.create_conversation()
        orchestrator.send_message(conversation.id, "delete my transcript")

        cancelled = orchestrator.cancel_pending(conversation.id)

        self.assertIsNotNone(self.workspace.get_document("d1"))
        self.assertEqual(executor.calls, 0)
        self.assertEqual(len(cancelled.messages), 1)
        self.assertEqual(
            cancelled.messages[0].content,
            "Cancelled. 'Transcript.pdf' was not deleted.",
        )
        self.assertEqual(cancelled.state, STATE_IDLE)

    def test_second_delete_of_same_document_reports_failure(self):
        orchestrator, _, executor = self._orchestrator([_delete_reply(), _delete_reply()])
        conversation = orchestrator.create_conversation()
        orchestrator.send_message(conversation.id, "delete my transcript")
        orchestrator.confirm_pending(conversation.id)
        orchestrator.send_message(conversation.id, "delete it again")
        before = conversation.messages

        again = orchestrator.confirm_pending(conversation.id)

        self.assertEqual(executor.calls, 2)
        self.assertEqual(len(again.messages), 1)
        self.assertTrue(again.messages[0].content.startswith("⚠️"))
        self.assertIn("no longer exists", again.messages[0].content)
        self.assertFalse(again.action_result.success)
        self.assertEqual(again.state, STATE_IDLE)
        self.assertEqual(conversation.messages[: len(before)], before)
        self.assertEqual(len(conversation.messages), len(before) + 1)

    def test_agent_cannot_skip_confirmation_for_mandatory_kind(self):
        orchestrator, _, executor = self._orchestrator([_delete_reply(confirmation_required=False)])
        conversation = orchestrator.create_conversation()

        turn = orchestrator.send_message(conversation.id, "delete it now")

        self.assertEqual(turn.state, STATE_AWAITING_CONFIRMATION)
        self.assertEqual(executor.calls, 0)

    def test_toggle_setting_runs_without_confirmation(self):
        reply = (
            "Turning on biometric login.\n"
            '```action\n{"type": "toggle-setting", "params": {"setting": {"key": "biometricEnabled", "value": true}}}\n```'
        )
        orchestrator, _, executor = self._orchestrator([reply])
        conversation = orchestrator.create_conversation()

        turn = orchestrator.send_message(conversation.id, "enable face id")

        self.assertTrue(self.workspace.get_setting("biometricEnabled"))
        self.assertEqual(executor.calls, 1)
        self.assertEqual(turn.state, STATE_IDLE)
        self.assertEqual([m.role for m in turn.messages], ["user", "assistant", "assistant"])
        self.assertTrue(turn.messages[-1].content.startswith("✅"))
        self.assertTrue(turn.action_result.success)

    def test_timeout_uses_fallback_without_action(self):
        orchestrator, _, executor = self._orchestrator([ReasoningUnavailableError("timed out")])
        conversation = orchestrator.create_conversation()

        with self.assertLogs("zeniagent.services.assistant", level="WARNING"):
            turn = orchestrator.send_message(conversation.id, "hello")

        self.assertTrue(turn.used_fallback)
        self.assertIsNone(turn.pending)
        self.assertEqual(executor.calls, 0)
        self.assertTrue(turn.messages[-1].content)
        self.assertIn("Hey Sam!", turn.messages[-1].content)

    def test_unexpected_client_error_uses_fallback(self):
        orchestrator, _, executor = self._orchestrator([RuntimeError("socket exploded")])
        conversation = orchestrator.create_conversation()

        with self.assertLogs("zeniagent.services.assistant", level="ERROR"):
            turn = orchestrator.send_message(conversation.id, "hello")

        self.assertTrue(turn.used_fallback)
        self.assertEqual(executor.calls, 0)
        self.assertEqual([m.role for m in turn.messages], ["user", "assistant"])
        self.assertIn("Hey Sam!", turn.messages[-1].content)

    def test_missing_api_key_goes_straight_to_fallback(self):
        orchestrator = AssistantOrchestrator(self.caps, reasoning=None)
        conversation = orchestrator.create_conversation()

        turn = orchestrator.send_message(conversation.id, "summarize this", attached_document_id="d1")

        self.assertFalse(orchestrator.reasoning_configured)
        self.assertTrue(turn.used_fallback)
        self.assertIn('Summary of "Transcript.pdf"', turn.messages[-1].content)
        self.assertEqual(turn.messages[0].attached_entity_id, "d1")

    def test_content_policy_refusal_does_not_fall_back(self):
        orchestrator, _, _ = self._orchestrator([ContentPolicyError("nope")])
        conversation = orchestrator.create_conversation()

        turn = orchestrator.send_message(conversation.id, "something bad")

        self.assertFalse(turn.used_fallback)
        self.assertEqual(turn.messages[-1].content, CONTENT_POLICY_REPLY)

    def test_rejected_directive_has_no_side_effect(self):
        reply = 'Done!\n```action\n{"type": "format_disk", "params": {}}\n```'
        orchestrator, _, executor = self._orchestrator([reply])
        conversation = orchestrator.create_conversation()

        turn = orchestrator.send_message(conversation.id, "wipe it")

        self.assertEqual(executor.calls, 0)
        self.assertIn("format_disk", turn.rejection)
        self.assertEqual([m.content for m in turn.messages][-1], "Done!")

    def test_malformed_directive_is_shown_as_text(self):
        reply = 'Okay\n```action\n{"type": "delete_document",\n```'
        orchestrator, _, executor = self._orchestrator([reply])
        conversation = orchestrator.create_conversation()

        turn = orchestrator.send_message(conversation.id, "delete")

        self.assertEqual(turn.messages[-1].content, reply)
        self.assertEqual(executor.calls, 0)
        self.assertIsNone(turn.rejection)

    def test_message_while_pending_is_a_conflict(self):
        orchestrator, _, _ = self._orchestrator([_delete_reply(), "unused"])
        conversation = orchestrator.create_conversation()
        orchestrator.send_message(conversation.id, "delete my transcript")

        with self.assertRaises(PendingActionConflictError):
            orchestrator.send_message(conversation.id, "actually wait")
        self.assertEqual(len(conversation.messages), 2)

    def test_concurrent_send_is_busy(self):
        entered = threading.Event()
        release = threading.Event()

        class _SlowClient:
            def complete(self, history, document=None, snapshot=None):
                entered.set()
                release.wait(5)
                return "done"

        orchestrator = AssistantOrchestrator(self.caps, reasoning=_CONFIG, client_factory=lambda cfg: _SlowClient())
        conversation = orchestrator.create_conversation()
        worker = threading.Thread(target=orchestrator.send_message, args=(conversation.id, "first"))
        worker.start()
        entered.wait(5)
        try:
            with self.assertRaises(ConversationBusyError):
                orchestrator.send_message(conversation.id, "second")
        finally:
            release.set()
            worker.join(5)

        self.assertEqual([m.content for m in conversation.messages], ["first", "done"])

    def test_confirm_without_pending_raises(self):
        orchestrator, _, _ = self._orchestrator([])
        conversation = orchestrator.create_conversation()

        with self.assertRaises(NoPendingActionError):
            orchestrator.confirm_pending(conversation.id)

    def test_unknown_conversation(self):
        orchestrator, _, _ = self._orchestrator([])

        with self.assertRaises(UnknownConversationError):
            orchestrator.send_message("missing", "hi")

    def test_navigation_events_are_returned_with_the_turn(self):
        reply = (
            "Which one?\n"
            '```action\n{"type": "request_document_selection", '
            '"params": {"selectionPrompt": "Which document should I summarize?", "selectionPurpose": "summarize"}}\n```'
        )
        orchestrator, _, _ = self._orchestrator([reply])
        conversation = orchestrator.create_conversation()

        turn = orchestrator.send_message(conversation.id, "summarize a doc")

        self.assertEqual(
            turn.ui_events,
            [{"type": "select_document", "prompt": "Which document should I summarize?", "purpose": "summarize"}],
        )
        self.assertEqual(self.workspace.list_activities(), [])

    def test_history_is_bounded(self):
        client = _ScriptedClient(["a", "b", "c"])
        orchestrator = AssistantOrchestrator(
            self.caps,
            reasoning=_CONFIG,
            history_limit=3,
            client_factory=lambda cfg: client,
        )
        conversation = orchestrator.create_conversation()
        for text in ("one", "two", "three"):
            orchestrator.send_message(conversation.id, text)

        self.assertEqual(len(client.calls[-1]["history"]), 3)
        self.assertEqual(client.calls[-1]["history"][-1], {"role": "user", "content": "three"})

    def test_reload_reasoning_can_disable_remote_calls(self):
        orchestrator, client, _ = self._orchestrator(["remote"])
        conversation = orchestrator.create_conversation()

        orchestrator.reload_reasoning(None)
        turn = orchestrator.send_message(conversation.id, "hello")

        self.assertTrue(turn.used_fallback)
        self.assertEqual(client.calls, [])


if __name__ == "__main__":
    unittest.main()
