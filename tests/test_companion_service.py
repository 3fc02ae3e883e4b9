"""
Tests for honey badger management.
"""

import pytest

from honeybadger.core.agents.companion.personalities import PersonalityType, resolve
from honeybadger.core.config import settings
from honeybadger.core.errors import InvalidState, NotFound, UnknownPersonality
from honeybadger.models.enums import ChallengeStatus
from honeybadger.services import companion_service


class TestCreateCompanion:
    def test_create_takes_avatar_from_personality(self, db_session, sender):
        companion = companion_service.create_companion(db_session, sender, "Rex", "COACH")

        assert companion.personality == PersonalityType.COACH
        assert companion.avatar == resolve(PersonalityType.COACH).avatar
        assert companion.level == 1
        assert companion.experience == 0
        assert companion.is_available

    def test_unknown_personality(self, db_session, sender):
        with pytest.raises(UnknownPersonality) as exc:
            companion_service.create_companion(db_session, sender, "Rex", "WIZARD")
        assert exc.value.message == "Invalid personality type: WIZARD"

    def test_active_limit(self, db_session, sender):
        for i in range(settings.MAX_ACTIVE_COMPANIONS):
            companion_service.create_companion(db_session, sender, f"Badger {i}", "BUDDY")

        with pytest.raises(InvalidState):
            companion_service.create_companion(db_session, sender, "One too many", "BUDDY")

    def test_retired_companions_free_a_slot(self, db_session, sender):
        created = [
            companion_service.create_companion(db_session, sender, f"Badger {i}", "BUDDY")
            for i in range(settings.MAX_ACTIVE_COMPANIONS)
        ]
        companion_service.retire_companion(db_session, sender, created[0].id)

        companion_service.create_companion(db_session, sender, "Replacement", "BUDDY")


class TestReadUpdate:
    def test_list_excludes_retired(self, db_session, make_companion, sender, recipient):
        keep = make_companion(sender, name="Keep")
        gone = make_companion(sender, name="Gone", is_active=False)
        make_companion(recipient, name="Theirs")

        ids = [c.id for c in companion_service.list_companions(db_session, sender)]
        assert ids == [keep.id]
        assert gone.id not in ids

    def test_get_someone_elses(self, db_session, make_companion, sender, recipient):
        theirs = make_companion(recipient)
        with pytest.raises(NotFound):
            companion_service.get_owned_companion(db_session, sender, theirs.id)

    def test_rename(self, db_session, companion, sender):
        assert companion_service.rename_companion(db_session, sender, companion.id, "Rocky").name == "Rocky"
        assert companion_service.rename_companion(db_session, sender, companion.id, None).name == "Rocky"


class TestRetire:
    @pytest.mark.parametrize("status", [ChallengeStatus.PENDING, ChallengeStatus.ACTIVE])
    def test_busy_companion_cannot_retire(self, db_session, make_challenge, sender, recipient, companion, status):
        make_challenge(sender, recipient, companion=companion, status=status)

        with pytest.raises(InvalidState):
            companion_service.retire_companion(db_session, sender, companion.id)

        db_session.refresh(companion)
        assert companion.is_active

    def test_companion_of_completed_challenge_can_retire(self, db_session, make_challenge, sender, recipient, companion):
        make_challenge(sender, recipient, companion=companion, status=ChallengeStatus.COMPLETED)

        retired = companion_service.retire_companion(db_session, sender, companion.id)

        assert retired.is_active is False
        assert companion_service.list_companions(db_session, sender) == []
