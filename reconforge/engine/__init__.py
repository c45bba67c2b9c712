#
# PURPOSE:
# Runs the recon pipeline for scan jobs and tracks their lifecycle.
#
# MODULES IN THIS PACKAGE:
# - **models.py**: Job, stage specs/records, PipelineResult, lifecycle events
# - **invoker.py**: One external-tool invocation with timeout and kill
# - **stages.py**: The pipeline's ordered stage list, declared as data
# - **pipeline.py**: PipelineRunner (stages -> stream of log/done/error events)
# - **coordinator.py**: JobCoordinator (job table, contexts, status, cancel)
#
# WORKFLOW:
# submit(hostname) → context task runs PipelineRunner → events over a queue →
# relay updates the job table → status()/cancel() read and mutate it
#
