"""Tests for the DraftRestorer prompt."""

from audit_wizard.autosave.restore import DraftRestorer


def _collect_updates():
    state = {}

    def update_field(step_id, field_name, value):
        state.setdefault(step_id, {})[field_name] = value

    return state, update_field


class TestOffer:
    def test_offered_when_empty_and_no_remote_draft(self, mirror, acme_state):
        mirror.mirror(acme_state)
        assert DraftRestorer(mirror).offer({}, None) == acme_state

    def test_not_offered_when_remote_draft_non_empty(self, mirror, acme_state):
        mirror.mirror(acme_state)
        remote = {1: {"companyName": "Remote Co"}}
        assert DraftRestorer(mirror).offer({}, remote) is None

    def test_offered_when_remote_draft_is_empty(self, mirror, acme_state):
        mirror.mirror(acme_state)
        assert DraftRestorer(mirror).offer({}, {}) == acme_state

    def test_not_offered_when_form_state_non_empty(self, mirror, acme_state):
        mirror.mirror(acme_state)
        assert DraftRestorer(mirror).offer({2: {"notes": "x"}}, None) is None

    def test_not_offered_without_backup(self, mirror):
        assert DraftRestorer(mirror).offer({}, None) is None


class TestPrompt:
    def test_accept_restores_and_clears_mirror(self, mirror, acme_state):
        mirror.mirror(acme_state)
        state, update_field = _collect_updates()
        asked = []

        restored = DraftRestorer(mirror).prompt(
            {}, None, lambda backup: asked.append(backup) or True, update_field
        )

        assert restored is True
        assert asked == [acme_state]
        assert state == {1: {"companyName": "Acme"}}
        assert mirror.load() is None

    def test_decline_discards_backup(self, mirror, acme_state):
        mirror.mirror(acme_state)
        state, update_field = _collect_updates()

        restored = DraftRestorer(mirror).prompt({}, None, lambda backup: False, update_field)

        assert restored is False
        assert state == {}
        assert mirror.load() is None

    def test_never_asks_when_remote_draft_exists(self, mirror, acme_state):
        mirror.mirror(acme_state)
        _, update_field = _collect_updates()
        asked = []

        restored = DraftRestorer(mirror).prompt(
            {}, {1: {"companyName": "Remote"}}, lambda b: asked.append(b) or True, update_field
        )

        assert restored is False
        assert asked == []
        # The backup is left alone, not discarded.
        assert mirror.load() == acme_state

    def test_restore_applies_each_field(self, mirror):
        backup = {1: {"companyName": "Acme", "industry": "Retail"}, 2: {"notes": "ChatGPT"}}
        calls = []
        applied = DraftRestorer(mirror).restore(backup, lambda *args: calls.append(args))
        assert applied == 3
        assert sorted(calls) == [
            (1, "companyName", "Acme"),
            (1, "industry", "Retail"),
            (2, "notes", "ChatGPT"),
        ]

    def test_restore_skips_rejected_fields(self, mirror):
        def update_field(step_id, field_name, value):
            if not isinstance(value, str):
                raise ValueError("bad value")

        backup = {1: {"companyName": "Acme", "nested": {"x": 1}}}
        assert DraftRestorer(mirror).restore(backup, update_field) == 1
