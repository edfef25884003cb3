"""Quest catalog and progression API."""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from questline.core.deps import get_current_user
from questline.db.session import get_db
from questline.models.user import User
from questline.schemas.quest import (
    QuestCompletionOut,
    QuestCreate,
    QuestDetailsOut,
    QuestOut,
    SharedQuestCreateRequest,
    SharedQuestOut,
    TaskScheduleRequest,
    UserQuestOut,
    UserTaskStateOut,
)
from questline.services import catalog_service, progression_service
from questline.services.recommendation_client import notify_user_quests
from questline.services.shared_quest_service import create_shared_quest, list_shared_quests

router = APIRouter(prefix="/quests", tags=["quests"])


@router.post("", response_model=QuestOut, status_code=status.HTTP_201_CREATED)
def create(
    data: QuestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Add a quest with its ordered tasks to the catalog."""
    return catalog_service.create_quest(db, data)


@router.get("/shop", response_model=list[QuestOut])
def shop(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Quests the current user can still buy."""
    return catalog_service.list_shop(db, current_user.id)


@router.get("/available", response_model=list[QuestOut])
def available(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Unowned quests within the user's budget and at most one level above them."""
    return catalog_service.list_available(db, current_user.id)


@router.get("/my-quests-with-details", response_model=list[QuestDetailsOut])
def my_quests_with_details(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return [
        QuestDetailsOut.model_validate(item, from_attributes=True)
        for item in catalog_service.list_my_quests_with_details(db, current_user.id)
    ]


@router.get("/active", response_model=list[QuestOut])
def active(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return catalog_service.list_active(db, current_user.id)


@router.get("/completed", response_model=list[QuestOut])
def completed(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return catalog_service.list_completed(db, current_user.id)


@router.get("/shared", response_model=list[SharedQuestOut])
def shared(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Shared quests the current user takes part in."""
    return list_shared_quests(db, current_user.id)


@router.post("/shared", response_model=SharedQuestOut, status_code=status.HTTP_201_CREATED)
def create_shared(
    data: SharedQuestCreateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Buy and start a quest together with a friend."""
    return create_shared_quest(db, current_user.id, data.friend_id, data.quest_id)


@router.get("/{quest_id}", response_model=QuestDetailsOut)
def details(
    quest_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Quest with the current user's progress on each task."""
    return QuestDetailsOut.model_validate(
        catalog_service.get_quest_details(db, quest_id, current_user.id),
        from_attributes=True,
    )


@router.post("/{quest_id}/purchase", response_model=UserQuestOut, status_code=status.HTTP_201_CREATED)
def purchase(
    quest_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Buy a quest. The recommendation service is told after the response is sent."""
    user_quest = progression_service.purchase_quest(db, current_user.id, quest_id)
    background_tasks.add_task(
        notify_user_quests,
        current_user.id,
        catalog_service.list_user_quest_ids(db, current_user.id),
    )
    return user_quest


@router.post("/{quest_id}/start", response_model=UserQuestOut)
def start(
    quest_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return progression_service.start_quest(db, current_user.id, quest_id)


@router.post("/{quest_id}/tasks/{task_id}/complete", response_model=UserTaskStateOut)
def complete_task(
    quest_id: int,
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Complete a task; the response carries the user's level after the reward."""
    user_task = progression_service.complete_task(db, current_user.id, quest_id, task_id)
    db.refresh(current_user)
    return UserTaskStateOut.model_validate(user_task).model_copy(update={"level": current_user.level})


@router.post("/{quest_id}/complete", response_model=QuestCompletionOut)
def complete_quest(
    quest_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Finish a quest. For a shared quest both partners are finalized by the second caller."""
    completion = progression_service.complete_quest(db, current_user.id, quest_id)
    return QuestCompletionOut(
        quest_id=completion.quest_id,
        completed=[UserQuestOut.model_validate(row) for row in completion.completed],
        shared_quest_id=completion.shared_quest_id,
    )


@router.put("/{quest_id}/schedule", response_model=list[UserTaskStateOut])
def schedule(
    quest_id: int,
    data: TaskScheduleRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Store scheduling fields for the user's tasks; already set values are kept."""
    return progression_service.schedule_tasks(db, current_user.id, quest_id, data.tasks)
