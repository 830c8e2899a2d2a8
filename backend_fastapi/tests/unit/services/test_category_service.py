import pytest
from unittest.mock import patch, MagicMock
import uuid

from workboard.core.errors import AppError
from workboard.db.models.category_model_db import Category as CategoryDBModel
from workboard.db.models.user_model_db import User as UserDBModel
from workboard.db.models.workspace_model_db import Workspace as WorkspaceDBModel
from workboard.models.category_models import CategoryUpdate
from workboard.models.role_models import RoleEnum, EDITOR_ROLES
from workboard.services.access_service import insufficient_role
from workboard.services.category_service import CategoryService

pytestmark = [pytest.mark.unit, pytest.mark.services, pytest.mark.categories]

@pytest.fixture
def mock_positions() -> MagicMock:
    return MagicMock()

@pytest.fixture
def mock_access() -> MagicMock:
    return MagicMock()

@pytest.fixture
def category_service(mock_positions, mock_access) -> CategoryService:
    return CategoryService(mock_positions, mock_access, MagicMock())

@pytest.fixture
def user() -> UserDBModel:
    return UserDBModel(id=uuid.uuid4(), email="cat@example.com", name="Cat Person")

@pytest.fixture
def workspace(user) -> WorkspaceDBModel:
    return WorkspaceDBModel(id=uuid.uuid4(), name="Cat WS", owner=user)

@pytest.fixture
def category(workspace) -> CategoryDBModel:
    return CategoryDBModel(id=uuid.uuid4(), workspace=workspace, name="To Do", position=0)

# === delete_category ===
@patch('workboard.services.category_service.TaskDBModel.objects')
@patch('workboard.services.category_service.CategoryDBModel.objects')
def test_delete_category_with_tasks_is_refused(mock_category_objects, mock_task_objects, category_service, mock_positions, user, category):
    mock_category_objects.return_value.first.return_value = category
    mock_task_objects.return_value.count.return_value = 3

    with pytest.raises(AppError) as exc:
        category_service.delete_category(user, category.id)

    assert exc.value.status_code == 409
    assert exc.value.message == "Cannot delete category with 3 task(s). Please move or delete the tasks first."
    assert exc.value.data == {"taskCount": 3}
    mock_positions.remove.assert_not_called()

@patch('workboard.services.category_service.TaskDBModel.objects')
@patch('workboard.services.category_service.CategoryDBModel.objects')
def test_delete_empty_category_compacts(mock_category_objects, mock_task_objects, category_service, mock_positions, mock_access, user, category):
    mock_category_objects.return_value.first.return_value = category
    mock_task_objects.return_value.count.return_value = 0

    category_service.delete_category(user, category.id)

    mock_access.require_editor.assert_called_once_with(user.id, category.workspace_id)
    mock_positions.remove.assert_called_once()
    assert mock_positions.remove.call_args.args[0] is category

@patch('workboard.services.category_service.CategoryDBModel.objects')
def test_delete_missing_category(mock_category_objects, category_service, user):
    mock_category_objects.return_value.first.return_value = None
    with pytest.raises(AppError) as exc:
        category_service.delete_category(user, uuid.uuid4())
    assert exc.value.status_code == 404

@patch('workboard.services.category_service.CategoryDBModel.objects')
def test_get_category_in_foreign_workspace_is_no_access(mock_category_objects, category_service, mock_access, user, category):
    mock_category_objects.return_value.first.return_value = category
    mock_access.require_member.side_effect = AppError.forbidden("You do not have access to this workspace")

    with pytest.raises(AppError) as exc:
        category_service.get_category(user, category.id)
    assert exc.value.status_code == 403

# === update_category ===
@patch('workboard.services.category_service.CategoryDBModel.objects')
def test_update_category_without_fields(mock_category_objects, category_service, user, category):
    mock_category_objects.return_value.first.return_value = category
    with pytest.raises(AppError, match="No fields to update"):
        category_service.update_category(user, category.id, CategoryUpdate())

@patch('workboard.services.category_service.CategoryDBModel.objects')
def test_update_category_position_is_a_move(mock_category_objects, category_service, mock_positions, user, category):
    mock_category_objects.return_value.first.return_value = category
    category_service.update_category(user, category.id, CategoryUpdate(position=2))
    mock_positions.move.assert_called_once()
    assert mock_positions.move.call_args.args[2] == 2

@patch('workboard.services.category_service.CategoryDBModel.objects')
def test_update_category_rename_with_move_applies_inside_move(mock_category_objects, category_service, mock_positions, user, category):
    mock_category_objects.return_value.first.return_value = category
    mock_category_objects.return_value.filter.return_value.first.return_value = None

    with patch.object(CategoryDBModel, 'save') as mock_save:
        category_service.update_category(user, category.id, CategoryUpdate(name="Doing", position=2))
    mock_save.assert_not_called()

    mock_positions.move.assert_called_once()
    apply = mock_positions.move.call_args.kwargs["apply"]
    moved = CategoryDBModel(id=category.id, workspace=category.workspace, name="To Do", position=0)
    apply(moved)
    assert moved.name == "Doing"

# === reorder_categories ===
def test_reorder_requires_ids(category_service, user):
    with pytest.raises(AppError, match="categoryIds array is required"):
        category_service.reorder_categories(user, [])

@patch('workboard.services.category_service.CategoryDBModel.objects')
def test_reorder_with_unknown_id(mock_category_objects, category_service, user, category):
    mock_category_objects.return_value.only.return_value = [category]
    with pytest.raises(AppError) as exc:
        category_service.reorder_categories(user, [category.id, uuid.uuid4()])
    assert exc.value.status_code == 400
    assert exc.value.message == "Some category IDs are invalid"

@patch('workboard.services.category_service.CategoryDBModel.objects')
def test_reorder_across_workspaces(mock_category_objects, category_service, user, category):
    other = CategoryDBModel(id=uuid.uuid4(), workspace=WorkspaceDBModel(id=uuid.uuid4(), name="Other"), name="X")
    mock_category_objects.return_value.only.return_value = [category, other]
    with pytest.raises(AppError) as exc:
        category_service.reorder_categories(user, [category.id, other.id])
    assert exc.value.status_code == 409
    assert exc.value.message == "All categories must belong to the same workspace"

@patch('workboard.services.category_service.CategoryDBModel.objects')
def test_reorder_refused_for_viewer(mock_category_objects, category_service, mock_access, mock_positions, user, category):
    mock_category_objects.return_value.only.return_value = [category]
    mock_access.require_editor.side_effect = insufficient_role(EDITOR_ROLES, RoleEnum.VIEWER)

    with pytest.raises(AppError) as exc:
        category_service.reorder_categories(user, [category.id])
    assert exc.value.status_code == 403
    assert exc.value.message == "This action requires one of these roles: admin, member. Your role: viewer"
    mock_access.require_editor.assert_called_once_with(user.id, category.workspace_id)
    mock_positions.reorder.assert_not_called()
