# ============================================================================
# reconforge/server/__init__.py
# Server Package - FastAPI Job API
# ============================================================================
#
# KEY ENDPOINTS:
# - POST /scan                 start a scan job, returns {jobId}
# - GET /status/{job_id}       job status (falls back to persisted meta.json)
# - GET /download/{job_id}     results.txt as an attachment
# - DELETE /results/{job_id}   cancel the job and delete its artifacts
# - GET /health, /status/health
#
# KEY MODULES:
# - **api.py**: application factory, error handlers, uvicorn entry point
# - **state.py**: process-wide ApplicationState holding the JobCoordinator
# - **routers/**: scans and system routes
#
# ============================================================================
