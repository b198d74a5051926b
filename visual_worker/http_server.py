import logging
from threading import Thread

from fastapi import FastAPI, HTTPException
import uvicorn

logger = logging.getLogger("visual_worker")


def create_app(service) -> FastAPI:
    """Build the health API around a WorkerService"""
    app = FastAPI(title="Visual Worker Health API")

    @app.get("/healthz")
    async def health_check():
        """Health check endpoint"""
        try:
            service.job_store.ping()
            return {"ok": True, "status": "healthy"}
        except Exception as e:
            logger.error(f"Health check failed: {str(e)}")
            raise HTTPException(status_code=503, detail=f"Job store connection failed: {str(e)}")

    @app.get("/jobs/peek")
    async def peek_jobs():
        """Peek at claimable jobs (dev only)"""
        try:
            jobs = service.job_store.get_pending_jobs()
            return {
                "pending_jobs": len(jobs),
                "jobs": [
                    {
                        "id": job.id,
                        "simulation_id": job.simulation_id,
                        "status": job.status.value,
                        "attempts": job.attempts,
                        "error_message": job.error_message,
                        "created_at": job.created_at.isoformat() if job.created_at else None
                    }
                    for job in jobs
                ]
            }
        except Exception as e:
            logger.error(f"Error peeking jobs: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error fetching jobs: {str(e)}")

    @app.get("/stats")
    async def get_stats():
        """Get worker statistics"""
        try:
            return service.get_stats()
        except Exception as e:
            logger.error(f"Error getting stats: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error fetching stats: {str(e)}")

    return app


class HealthServer:
    def __init__(self, service, port: int = 8000):
        self.port = port
        self.app = create_app(service)
        self.server_thread = None
        self.running = False

    def start(self):
        """Start the HTTP server in a background thread"""
        if self.running:
            return

        def run_server():
            try:
                uvicorn.run(
                    self.app,
                    host="0.0.0.0",
                    port=self.port,
                    log_level="warning",
                    access_log=False
                )
            except Exception as e:
                logger.error(f"HTTP server error: {str(e)}")

        self.server_thread = Thread(target=run_server, daemon=True)
        self.server_thread.start()
        self.running = True

        logger.info(f"Health server started on port {self.port}")

    def stop(self):
        """Stop the HTTP server"""
        self.running = False
        logger.info("Health server stopped")


def start_health_server(service) -> HealthServer:
    """Start the health server if enabled"""
    if service.config.ENABLE_HTTP_SERVER:
        server = HealthServer(service, service.config.HTTP_PORT)
        server.start()
        return server
    return None
