import pytest
from datetime import timedelta
from decimal import Decimal

from angler_seasons.core.enums import SeasonStatus, SeasonType
from angler_seasons.core.exceptions import (
    AlreadyEnrolledError, SeasonAlreadyExistsError, SeasonClosedError, SeasonFullError,
    SeasonNotFoundError, InvalidSeasonWindowError, InvalidScoringRulesError, ParticipantNotFoundError,
)
from angler_seasons.schemas.season import SeasonCreate, ParticipantResponse
from angler_seasons.services import season_service


@pytest.mark.asyncio
async def test_create_season_rejects_duplicate_name(db_session, season_factory):
    await season_factory(name="spring_open")
    with pytest.raises(SeasonAlreadyExistsError):
        await season_factory(name="spring_open")

@pytest.mark.asyncio
async def test_create_season_validates_window(db_session, clock):
    now = clock()
    base = dict(name="bad", display_name="Bad", type=SeasonType.CUSTOM)

    with pytest.raises(InvalidSeasonWindowError):
        await season_service.create_season(db_session, SeasonCreate(start_date=now, end_date=now, **base))

    with pytest.raises(InvalidSeasonWindowError):
        await season_service.create_season(db_session, SeasonCreate(
            start_date=now, end_date=now + timedelta(days=7),
            registration_start_date=now - timedelta(days=3),
            registration_end_date=now + timedelta(days=1),
            **base,
        ))

    with pytest.raises(InvalidScoringRulesError):
        await season_service.create_season(db_session, SeasonCreate(
            start_date=now, end_date=now + timedelta(days=7),
            scoring_rules={"categories": {"MOST_ACTIVE": {"weight": 1}}},
            **base,
        ))

@pytest.mark.asyncio
async def test_enroll_and_duplicate(db_session, season_factory):
    season = await season_factory()
    participant = await season_service.enroll(db_session, "angler-1", season.id)

    assert participant.total_score == Decimal("0")
    assert participant.category_scores == {}
    assert participant.is_active is True

    with pytest.raises(AlreadyEnrolledError):
        await season_service.enroll(db_session, "angler-1", season.id)

@pytest.mark.asyncio
async def test_enroll_unknown_season(db_session):
    with pytest.raises(SeasonNotFoundError):
        await season_service.enroll(db_session, "angler-1", "missing-season")

@pytest.mark.asyncio
async def test_enroll_closed_seasons(db_session, season_factory):
    completed = await season_factory(name="done", status=SeasonStatus.COMPLETED)
    cancelled = await season_factory(name="cancelled", status=SeasonStatus.CANCELLED)
    no_late = await season_factory(name="no_late", allow_late_join=False)

    for season in (completed, cancelled, no_late):
        with pytest.raises(SeasonClosedError):
            await season_service.enroll(db_session, "angler-1", season.id)

    # UPCOMING 시즌은 late join 설정과 무관하게 등록 가능
    upcoming = await season_factory(name="upcoming", status=SeasonStatus.UPCOMING, allow_late_join=False)
    assert await season_service.enroll(db_session, "angler-1", upcoming.id)

@pytest.mark.asyncio
async def test_enroll_respects_max_participants(db_session, season_factory):
    season = await season_factory(max_participants=2)
    await season_service.enroll(db_session, "angler-1", season.id)
    await season_service.enroll(db_session, "angler-2", season.id)

    with pytest.raises(SeasonFullError):
        await season_service.enroll(db_session, "angler-3", season.id)

    # 비활성 참가자는 정원에서 제외
    await season_service.set_participant_active(db_session, season.id, "angler-2", False)
    assert await season_service.enroll(db_session, "angler-3", season.id)

@pytest.mark.asyncio
async def test_set_participant_active_unknown(db_session, season_factory):
    season = await season_factory()
    with pytest.raises(ParticipantNotFoundError):
        await season_service.set_participant_active(db_session, season.id, "ghost", False)

@pytest.mark.asyncio
async def test_record_score_accumulates(db_session, season_factory, clock):
    season = await season_factory()
    await season_service.enroll(db_session, "angler-1", season.id)

    await season_service.record_score(db_session, "angler-1", season.id, {"MOST_ACTIVE": 20}, 20, now=clock())
    participant = await season_service.record_score(
        db_session, "angler-1", season.id, {"MOST_ACTIVE": 10, "BIGGEST_CATCH": 5}, 15, now=clock(),
    )
    await db_session.commit()

    assert participant.category_scores == {"MOST_ACTIVE": 30, "BIGGEST_CATCH": 5}
    assert participant.total_score == Decimal("35")
    assert participant.total_score == sum(participant.category_scores.values())
    assert participant.last_activity_at is not None

@pytest.mark.asyncio
async def test_record_score_without_enrollment_is_noop(db_session, season_factory):
    season = await season_factory()
    assert await season_service.record_score(db_session, "stranger", season.id, {"MOST_ACTIVE": 5}, 5) is None

@pytest.mark.asyncio
async def test_recompute_ranks_is_dense_and_reports_changes(db_session, season_factory, clock):
    season = await season_factory()
    scores = {"a": 10, "b": 40, "c": 25, "d": 40}
    for offset, user_id in enumerate(scores):
        await season_service.enroll(db_session, user_id, season.id, now=clock() + timedelta(minutes=offset))
    for user_id, points in scores.items():
        await season_service.record_score(db_session, user_id, season.id, {"MOST_ACTIVE": points}, points)
    await db_session.commit()

    changes = await season_service.recompute_ranks(db_session, season.id)

    ranks = {c.user_id: c.new_rank for c in changes}
    # 동점(b, d)은 먼저 등록한 b가 앞
    assert ranks == {"b": 1, "d": 2, "c": 3, "a": 4}
    assert sorted(ranks.values()) == [1, 2, 3, 4]
    # 첫 순위 부여는 position_change 0
    assert all(c.old_rank is None and c.position_change == 0 for c in changes)

    # 변동 없으면 보고 없음
    assert await season_service.recompute_ranks(db_session, season.id) == []

    await season_service.record_score(db_session, "a", season.id, {"MOST_ACTIVE": 100}, 100)
    await db_session.commit()
    changes = await season_service.recompute_ranks(db_session, season.id)

    by_user = {c.user_id: c for c in changes}
    assert by_user["a"].old_rank == 4 and by_user["a"].new_rank == 1
    assert by_user["a"].position_change == 3
    assert by_user["c"].position_change == -1

@pytest.mark.asyncio
async def test_inactive_participants_are_not_ranked(db_session, season_factory):
    season = await season_factory()
    for user_id in ("a", "b"):
        await season_service.enroll(db_session, user_id, season.id)
    await season_service.set_participant_active(db_session, season.id, "a", False)

    changes = await season_service.recompute_ranks(db_session, season.id)
    assert [(c.user_id, c.new_rank) for c in changes] == [("b", 1)]

@pytest.mark.asyncio
async def test_active_competitions_for_user(db_session, season_factory):
    active = await season_factory(name="active_one")
    upcoming = await season_factory(name="upcoming_one", status=SeasonStatus.UPCOMING)
    opted_out = await season_factory(name="opted_out")

    for season in (active, upcoming, opted_out):
        await season_service.enroll(db_session, "angler-1", season.id)
    await season_service.set_participant_active(db_session, opted_out.id, "angler-1", False)

    competitions = await season_service.list_active_competitions_for_user(db_session, "angler-1")
    assert [s.id for s in competitions] == [active.id]

@pytest.mark.asyncio
async def test_count_seasons_by_status(db_session, season_factory):
    await season_factory(name="s1")
    await season_factory(name="s2", status=SeasonStatus.UPCOMING)
    await season_factory(name="s3", status=SeasonStatus.UPCOMING)

    counts = await season_service.count_seasons_by_status(db_session)
    assert counts == {"ACTIVE": 1, "UPCOMING": 2}

@pytest.mark.asyncio
async def test_participant_response_reads_orm_row(db_session, season_factory):
    season = await season_factory()
    participant = await season_service.enroll(db_session, "angler-1", season.id)
    await season_service.record_score(db_session, "angler-1", season.id, {"MOST_ACTIVE": 12}, 12)
    await db_session.commit()

    body = ParticipantResponse.model_validate(participant).model_dump(mode="json")
    assert body["user_id"] == "angler-1"
    assert body["season_id"] == season.id
    assert body["category_scores"] == {"MOST_ACTIVE": 12}
    assert isinstance(body["total_score"], str)
    assert Decimal(body["total_score"]) == Decimal("12")
    assert body["is_active"] is True
