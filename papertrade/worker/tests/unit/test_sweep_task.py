import pytest
from unittest.mock import MagicMock, patch

from papertrade.worker import tasks
from papertrade.worker.main import SWEEP_JOB_ID, register_jobs, sweep_expired_cache_job


@patch('papertrade.worker.tasks.CacheMaintenanceService')
@patch('papertrade.worker.tasks.SessionLocal')
def test_sweep_expired_cache_task_success(mock_session_local, mock_service_class):
    # GIVEN
    mock_db = MagicMock()
    mock_session_local.return_value = mock_db
    mock_service_class.return_value.clean_expired_cache.return_value = {
        "quote_cache_entries_removed": 2,
        "search_cache_entries_removed": 1,
        "total_entries_removed": 3,
    }

    # WHEN
    result = tasks.sweep_expired_cache_task()

    # THEN
    assert result["success"] is True
    assert result["total_entries_removed"] == 3
    assert tasks.last_sweep["success"] is True
    assert tasks.last_sweep["total_entries_removed"] == 3
    mock_service_class.return_value.clean_expired_cache.assert_called_once_with(mock_db)
    mock_db.close.assert_called_once()
    mock_db.rollback.assert_not_called()


@patch('papertrade.worker.tasks.CacheMaintenanceService')
@patch('papertrade.worker.tasks.SessionLocal')
def test_sweep_expired_cache_task_contains_errors(mock_session_local, mock_service_class):
    # GIVEN: 정리 도중 DB 오류
    mock_db = MagicMock()
    mock_session_local.return_value = mock_db
    mock_service_class.return_value.clean_expired_cache.side_effect = Exception("database is locked")

    # WHEN
    result = tasks.sweep_expired_cache_task()

    # THEN: 예외는 밖으로 나오지 않는다
    assert result == {"success": False, "error": "database is locked"}
    assert tasks.last_sweep["error"] == "database is locked"
    mock_db.rollback.assert_called_once()
    mock_db.close.assert_called_once()


@pytest.mark.asyncio
async def test_sweep_job_runs_task_in_thread():
    with patch('papertrade.worker.main.tasks.sweep_expired_cache_task', return_value={"success": True}) as mock_task:
        result = await sweep_expired_cache_job()

    assert result == {"success": True}
    mock_task.assert_called_once()


@patch('papertrade.worker.main.scheduler')
def test_register_jobs(mock_scheduler):
    register_jobs()

    mock_scheduler.add_job.assert_called_once()
    kwargs = mock_scheduler.add_job.call_args.kwargs
    assert kwargs["id"] == SWEEP_JOB_ID
    assert kwargs["replace_existing"] is True
    assert mock_scheduler.add_job.call_args.args[1] == 'interval'
