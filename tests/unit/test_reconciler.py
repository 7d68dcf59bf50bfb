"""
Unit tests for per-folder reconciliation.

Uses the in-memory FakeExchange from conftest.
"""

from readonly_permissions.folders import FolderPath, RightsTier
from readonly_permissions.models import PermissionEntry
from readonly_permissions.reconciler import find_existing_entry, reconcile, reconcile_folder, reconcile_root


# =============================================================================
# ENTRY MATCHING TESTS
# =============================================================================


class TestFindExistingEntry:
    """Test locating the principal's entry among a folder's permissions."""

    def test_finds_exact_match(self, principal):
        entries = [
            PermissionEntry(principal_display_name="Default", access_rights=["None"]),
            PermissionEntry(principal_display_name="Alex Assistant", access_rights=["Reviewer"]),
        ]

        assert find_existing_entry(entries, principal) is entries[1]

    def test_case_insensitive(self, principal):
        entries = [PermissionEntry(principal_display_name="ALEX ASSISTANT", access_rights=["Reviewer"])]

        assert find_existing_entry(entries, principal) is entries[0]

    def test_similar_name_is_not_a_match(self, principal):
        entries = [PermissionEntry(principal_display_name="Alex Assistant (Contractor)", access_rights=["Owner"])]

        assert find_existing_entry(entries, principal) is None

    def test_no_entries(self, principal):
        assert find_existing_entry([], principal) is None


# =============================================================================
# RECONCILE TESTS
# =============================================================================


class TestReconcile:
    """Test the skip-if-present, set-if-absent decision."""

    def test_root_receives_folder_visible_only(self, fake_exchange, principal, audit_log):
        root = FolderPath.root("jdoe")

        outcome = reconcile_root(fake_exchange, root, principal, audit_log)

        assert outcome.status == "set"
        assert outcome.tier is RightsTier.ROOT
        assert fake_exchange.add_calls == [("jdoe:\\", "assistant@contoso.com", ("FolderVisible",))]
        assert fake_exchange.rights_for("jdoe:\\", "Alex Assistant") == ["FolderVisible"]

    def test_folder_receives_reviewer_rights(self, fake_exchange, principal, audit_log):
        inbox = FolderPath.from_statistic("jdoe", "/Inbox")

        outcome = reconcile_folder(fake_exchange, inbox, principal, audit_log)

        assert outcome.status == "set"
        assert outcome.rights == ["ReadItems", "FolderVisible"]
        assert fake_exchange.add_calls == [("jdoe:\\Inbox", "assistant@contoso.com", ("ReadItems", "FolderVisible"))]
        assert any("jdoe:\\Inbox: granted ReadItems, FolderVisible to Alex Assistant" in m for m in audit_log.messages())

    def test_existing_entry_is_skipped_without_mutation(self, fake_exchange, principal, audit_log):
        calendar = FolderPath.from_statistic("jdoe", "/Calendar")

        outcome = reconcile_folder(fake_exchange, calendar, principal, audit_log)

        assert outcome.status == "skipped"
        assert outcome.rights == ["ReadItems"]
        assert fake_exchange.add_calls == []
        assert audit_log.messages("INFO") == [
            "jdoe:\\Calendar: Alex Assistant already has rights set (ReadItems) - skipping"
        ]

    def test_existing_entry_with_lesser_rights_is_still_skipped(self, fake_exchange, principal, audit_log):
        """Any entry counts as present; rights are never upgraded."""
        fake_exchange.permissions["jdoe:\\Inbox"] = [
            PermissionEntry(principal_display_name="Alex Assistant", access_rights=["None"])
        ]

        outcome = reconcile_folder(fake_exchange, FolderPath.from_statistic("jdoe", "/Inbox"), principal, audit_log)

        assert outcome.status == "skipped"
        assert fake_exchange.add_calls == []

    def test_rejected_mutation_is_a_failure(self, fake_exchange, principal, audit_log):
        fake_exchange.rejections["jdoe:\\Inbox"] = "The user doesn't have permission on this folder."

        outcome = reconcile_folder(fake_exchange, FolderPath.from_statistic("jdoe", "/Inbox"), principal, audit_log)

        assert outcome.status == "failed"
        assert outcome.error == "The user doesn't have permission on this folder."
        errors = audit_log.messages("ERROR")
        assert len(errors) == 1
        assert "jdoe:\\Inbox: failed to grant" in errors[0]
        assert "doesn't have permission" in errors[0]

    def test_unreadable_permissions_is_a_failure(self, fake_exchange, principal, audit_log):
        fake_exchange.read_errors["jdoe:\\Inbox"] = "Folder isn't permission-capable"

        outcome = reconcile_folder(fake_exchange, FolderPath.from_statistic("jdoe", "/Inbox"), principal, audit_log)

        assert outcome.status == "failed"
        assert outcome.error == "Folder isn't permission-capable"
        assert fake_exchange.add_calls == []

    def test_second_pass_skips_everything_the_first_set(self, fake_exchange, principal, audit_log):
        inbox = FolderPath.from_statistic("jdoe", "/Inbox")

        first = reconcile(fake_exchange, inbox, principal, RightsTier.STANDARD, audit_log)
        rights_after_first = fake_exchange.rights_for("jdoe:\\Inbox", "Alex Assistant")
        second = reconcile(fake_exchange, inbox, principal, RightsTier.STANDARD, audit_log)

        assert first.status == "set"
        assert second.status == "skipped"
        assert fake_exchange.rights_for("jdoe:\\Inbox", "Alex Assistant") == rights_after_first
        assert len(fake_exchange.add_calls) == 1
