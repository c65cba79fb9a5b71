from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from fastapi import FastAPI
from fastapi.testclient import TestClient

from papertrade.common.config import settings
from papertrade.worker.routers.scheduler import router

# Create a test app
app = FastAPI()
app.include_router(router, prefix="/api/v1")
client = TestClient(app)


class TestSchedulerRouter:
    """Scheduler Router 엔드포인트 테스트"""

    @patch('papertrade.worker.routers.scheduler.scheduler')
    def test_get_scheduler_status_running(self, mock_scheduler):
        """스케줄러 상태 조회 - 실행 중"""
        # GIVEN
        mock_scheduler.running = True
        mock_job = MagicMock()
        mock_job.id = "sweep_expired_cache_job"
        mock_job.name = "만료 캐시 정리"
        mock_job.next_run_time = datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc)
        mock_job.trigger = "interval[1:00:00]"
        mock_scheduler.get_jobs.return_value = [mock_job]

        # WHEN
        response = client.get("/api/v1/scheduler/status")

        # THEN
        assert response.status_code == 200
        data = response.json()
        assert data["is_running"] is True
        assert data["jobs"] == [{
            "id": "sweep_expired_cache_job",
            "name": "만료 캐시 정리",
            "next_run_time": "2024-01-15T10:00:00+00:00",
            "trigger": "interval[1:00:00]",
        }]
        assert data["cache_sweep"]["interval_minutes"] == settings.CACHE_SWEEP_INTERVAL_MINUTES

    @patch('papertrade.worker.routers.scheduler.scheduler')
    def test_get_scheduler_status_not_running(self, mock_scheduler):
        """스케줄러 상태 조회 - 실행 중이 아님"""
        mock_scheduler.running = False

        response = client.get("/api/v1/scheduler/status")

        data = response.json()
        assert data["is_running"] is False
        assert data["jobs"] == []
        mock_scheduler.get_jobs.assert_not_called()

    @patch('papertrade.worker.routers.scheduler.scheduler')
    def test_trigger_job(self, mock_scheduler):
        """작업 즉시 실행"""
        mock_scheduler.timezone = timezone.utc
        mock_job = MagicMock()
        mock_job.id = "sweep_expired_cache_job"
        mock_scheduler.get_job.return_value = mock_job

        response = client.post("/api/v1/scheduler/trigger/sweep_expired_cache_job")

        assert response.status_code == 200
        assert response.json()["job_id"] == "sweep_expired_cache_job"
        mock_job.modify.assert_called_once()

    @patch('papertrade.worker.routers.scheduler.scheduler')
    def test_trigger_unknown_job(self, mock_scheduler):
        """없는 작업 실행 요청"""
        mock_scheduler.get_job.return_value = None

        response = client.post("/api/v1/scheduler/trigger/nope")

        assert response.status_code == 404

    @patch('papertrade.worker.routers.scheduler.scheduler')
    def test_trigger_job_failure(self, mock_scheduler):
        """작업 수정 실패"""
        mock_scheduler.timezone = timezone.utc
        mock_job = MagicMock()
        mock_job.modify.side_effect = Exception("scheduler stopped")
        mock_scheduler.get_job.return_value = mock_job

        response = client.post("/api/v1/scheduler/trigger/sweep_expired_cache_job")

        assert response.status_code == 500
        assert "scheduler stopped" in response.json()["detail"]

    @patch('papertrade.worker.routers.scheduler.tasks')
    def test_status_reports_last_sweep(self, mock_tasks):
        """마지막 캐시 정리 결과 포함"""
        mock_tasks.last_sweep = {"finished_at": "2024-01-15T10:00:00", "success": True, "total_entries_removed": 4}

        response = client.get("/api/v1/scheduler/status")

        assert response.json()["cache_sweep"]["last_run"]["total_entries_removed"] == 4

    @patch('papertrade.worker.routers.scheduler.tasks.sweep_expired_cache_task')
    def test_run_cache_sweep_now(self, mock_task):
        """캐시 정리 즉시 실행"""
        mock_task.return_value = {"success": True, "total_entries_removed": 3}

        response = client.post("/api/v1/scheduler/sweep")

        assert response.status_code == 200
        assert response.json()["total_entries_removed"] == 3
        mock_task.assert_called_once()

    @patch('papertrade.worker.routers.scheduler.tasks.sweep_expired_cache_task')
    def test_run_cache_sweep_now_failure(self, mock_task):
        """캐시 정리 실패는 500"""
        mock_task.return_value = {"success": False, "error": "database is locked"}

        response = client.post("/api/v1/scheduler/sweep")

        assert response.status_code == 500
        assert "database is locked" in response.json()["detail"]
