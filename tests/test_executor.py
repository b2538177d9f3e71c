import unittest
from datetime import datetime, timedelta, timezone

from zeniagent.capabilities import (
    Document,
    EmailTransport,
    Folder,
    InMemoryWorkspace,
    RecordingNavigator,
    UserProfile,
    build_in_memory_capabilities,
)
from zeniagent.services.action_validator import validate_action
from zeniagent.services.executor import ActionExecutor


class _FakeEmail(EmailTransport):
    def __init__(self, result=True):
        self.result = result
        self.sent: list[dict[str, object]] = []

    def send(self, *, to, subject, body, attachment_ids=None):
        self.sent.append({"to": to, "subject": subject, "body": body, "attachment_ids": attachment_ids})
        return self.result


class _ExplodingEmail(EmailTransport):
    def send(self, *, to, subject, body, attachment_ids=None):
        raise ConnectionError("mail relay unreachable")


def _action(payload):
    outcome = validate_action(payload)
    assert outcome.action is not None, outcome.reason
    return outcome.action


class ActionExecutorTests(unittest.TestCase):
    def setUp(self):
        base = datetime(2026, 3, 1, tzinfo=timezone.utc)
        self.workspace = InMemoryWorkspace(profile=UserProfile(id="u1", first_name="Sam"))
        self.workspace.add_folder(Folder(id="f1", name="School", document_ids=(), created_at=base))
        self.workspace.add_document(
            Document(id="d1", name="Transcript.pdf", kind="pdf", page_count=2, file_size=2048, created_at=base)
        )
        self.workspace.add_document(
            Document(
                id="d2",
                name="Essay.pdf",
                kind="pdf",
                page_count=5,
                file_size=4096,
                created_at=base + timedelta(days=1),
                folder_id="f1",
            )
        )
        self.email = _FakeEmail()
        self.navigator = RecordingNavigator()
        self.caps = build_in_memory_capabilities(self.workspace, email=self.email, navigator=self.navigator)
        self.executor = ActionExecutor(self.caps)

    def test_delete_document_reports_name_and_audits(self):
        result = self.executor.execute(_action({"type": "delete_document", "params": {"documentId": "d1"}}))

        self.assertTrue(result.success)
        self.assertIn("Transcript.pdf", result.message)
        self.assertIsNone(self.workspace.get_document("d1"))
        activity = self.workspace.list_activities()[-1]
        self.assertEqual(activity.kind, "delete")
        self.assertEqual(activity.subtitle, "by Zai")

    def test_deleting_twice_fails_softly(self):
        action = _action({"type": "delete_document", "params": {"documentId": "d1"}})
        self.executor.execute(action)

        second = self.executor.execute(action)

        self.assertFalse(second.success)
        self.assertIn("no longer exists", second.message)
        self.assertEqual(len(self.workspace.list_activities()), 1)

    def test_move_to_folder_updates_membership(self):
        result = self.executor.execute(
            _action({"type": "move_to_folder", "params": {"documentId": "d1", "folderId": "f1"}})
        )

        self.assertTrue(result.success)
        self.assertIn("d1", self.workspace.get_folder("f1").document_ids)
        self.assertEqual(self.workspace.get_document("d1").folder_id, "f1")
        self.assertEqual(self.workspace.list_activities()[-1].kind, "move")

    def test_move_to_missing_folder_fails(self):
        result = self.executor.execute(
            _action({"type": "move_to_folder", "params": {"documentId": "d1", "folderId": "nope"}})
        )

        self.assertFalse(result.success)
        self.assertIn("no longer exists", result.message)

    def test_remove_from_folder(self):
        result = self.executor.execute(
            _action({"type": "remove_from_folder", "params": {"documentId": "d2", "folderId": "f1"}})
        )

        self.assertTrue(result.success)
        self.assertIsNone(self.workspace.get_document("d2").folder_id)

    def test_create_folder_adds_notification(self):
        result = self.executor.execute(_action({"type": "create_folder", "params": {"folderName": "Receipts"}}))

        self.assertTrue(result.success)
        self.assertIn("Receipts", [folder.name for folder in self.workspace.list_folders()])
        notification = self.workspace.list_notifications()[-1]
        self.assertEqual(notification.title, "Folder Created")

    def test_create_document_stores_content(self):
        result = self.executor.execute(
            _action(
                {
                    "type": "create_document",
                    "params": {
                        "newDocument": {
                            "name": "Bio Notes",
                            "content": "Cells are small.",
                            "type": "notes",
                            "folderId": "f1",
                        }
                    },
                }
            )
        )

        self.assertTrue(result.success)
        created = [doc for doc in self.workspace.list_documents() if doc.name == "Bio Notes"][0]
        self.assertEqual(created.content, "Cells are small.")
        self.assertEqual(created.folder_id, "f1")
        self.assertEqual(self.workspace.list_activities()[-1].kind, "ai_chat")

    def test_duplicate_document(self):
        result = self.executor.execute(_action({"type": "duplicate_document", "params": {"documentId": "d1"}}))

        self.assertTrue(result.success)
        self.assertIn("Transcript (copy).pdf", [doc.name for doc in self.workspace.list_documents()])

    def test_rename_document_and_folder(self):
        doc = self.executor.execute(
            _action({"type": "rename_document", "params": {"documentId": "d1", "newName": "Grades.pdf"}})
        )
        folder = self.executor.execute(
            _action({"type": "rename_folder", "params": {"folderId": "f1", "newName": "Uni"}})
        )

        self.assertTrue(doc.success and folder.success)
        self.assertEqual(self.workspace.get_document("d1").name, "Grades.pdf")
        self.assertEqual(self.workspace.get_folder("f1").name, "Uni")

    def test_send_email_uses_transport(self):
        result = self.executor.execute(
            _action(
                {
                    "type": "send_email",
                    "params": {"email": {"to": "a@b.co", "subject": "Hi", "body": "Hello", "attachmentIds": ["d1"]}},
                }
            )
        )

        self.assertTrue(result.success)
        self.assertEqual(self.email.sent[0]["attachment_ids"], ["d1"])
        self.assertEqual(self.workspace.list_activities()[-1].kind, "share")

    def test_send_email_false_is_a_failure_not_an_error(self):
        self.email.result = False

        result = self.executor.execute(
            _action({"type": "send_email", "params": {"email": {"to": "a@b.co", "subject": "Hi", "body": "x"}}})
        )

        self.assertFalse(result.success)
        self.assertEqual(self.workspace.list_activities(), [])

    def test_transport_exception_becomes_failed_result(self):
        executor = ActionExecutor(build_in_memory_capabilities(self.workspace, email=_ExplodingEmail()))

        with self.assertLogs("zeniagent.services.executor", level="ERROR"):
            result = executor.execute(
                _action({"type": "send_email", "params": {"email": {"to": "a@b.co", "subject": "s", "body": "b"}}})
            )

        self.assertFalse(result.success)
        self.assertIn("mail relay unreachable", result.message)

    def test_send_fax_queues_job_and_records_share(self):
        result = self.executor.execute(
            _action(
                {
                    "type": "send_fax",
                    "params": {"fax": {"recipientName": "Registrar", "faxNumber": "555-123-4567", "documentId": "d1"}},
                }
            )
        )

        self.assertTrue(result.success)
        share = self.workspace.list_shares()[-1]
        self.assertEqual((share.method, share.status), ("fax", "pending"))
        self.assertEqual(self.caps.fax.pending_jobs()[0].fax_number, "+15551234567")

    def test_send_fax_for_missing_document_does_not_queue(self):
        result = self.executor.execute(
            _action(
                {
                    "type": "send_fax",
                    "params": {"fax": {"recipientName": "Registrar", "faxNumber": "5551234567", "documentId": "zz"}},
                }
            )
        )

        self.assertFalse(result.success)
        self.assertEqual(self.caps.fax.pending_jobs(), [])

    def test_send_fax_with_bad_number_fails(self):
        with self.assertLogs("zeniagent.services.executor", level="ERROR"):
            result = self.executor.execute(
                _action(
                    {
                        "type": "send_fax",
                        "params": {"fax": {"recipientName": "R", "faxNumber": "123", "documentId": "d1"}},
                    }
                )
            )

        self.assertFalse(result.success)
        self.assertIn("too short", result.message)

    def test_navigation_leaves_no_audit_trail(self):
        self.navigator.bind("c1")

        nav = self.executor.execute(
            _action({"type": "navigate", "params": {"navigation": {"screen": "Folder", "params": {"id": "f1"}}}})
        )
        pick = self.executor.execute(
            _action(
                {
                    "type": "request_document_selection",
                    "params": {"selectionPrompt": "Which one?", "selectionPurpose": "summarize"},
                }
            )
        )

        self.assertTrue(nav.success and pick.success)
        self.assertEqual(self.workspace.list_activities(), [])
        events = self.navigator.drain("c1")
        self.assertEqual([event["type"] for event in events], ["navigate", "select_document"])

    def test_bulk_clears(self):
        self.workspace.add_notification(kind="info", title="t", message="m")
        self.workspace.record_share(recipient_name="R", method="email", status="delivered")

        self.assertTrue(self.executor.execute(_action({"type": "mark_notifications_read"})).success)
        self.assertTrue(all(n.is_read for n in self.workspace.list_notifications()))
        self.assertTrue(self.executor.execute(_action({"type": "clear_notifications"})).success)
        self.assertEqual(self.workspace.list_notifications(), [])
        self.assertTrue(self.executor.execute(_action({"type": "clear_fax_history"})).success)
        self.assertEqual(self.workspace.list_shares(), [])
        self.assertTrue(self.executor.execute(_action({"type": "clear_activity_history"})).success)
        self.assertEqual([a.title for a in self.workspace.list_activities()], ["Cleared activity history"])

    def test_update_profile_is_partial(self):
        result = self.executor.execute(
            _action({"type": "update_profile", "params": {"profileUpdate": {"school": "MIT"}}})
        )

        self.assertTrue(result.success)
        profile = self.workspace.get_profile()
        self.assertEqual((profile.first_name, profile.school), ("Sam", "MIT"))

    def test_toggle_setting(self):
        result = self.executor.execute(
            _action({"type": "toggle_setting", "params": {"setting": {"key": "biometricEnabled", "value": True}}})
        )

        self.assertTrue(result.success)
        self.assertTrue(self.workspace.get_setting("biometricEnabled"))

    def test_every_known_kind_has_a_handler(self):
        from zeniagent.services.action_validator import ACTION_SPECS

        self.assertEqual(sorted(ACTION_SPECS), self.executor.supported_kinds())


if __name__ == "__main__":
    unittest.main()
