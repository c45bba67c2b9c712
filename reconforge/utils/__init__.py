#
# PURPOSE:
# Shared helpers used across ReconForge.
#
# KEY MODULES:
# - **async_helpers.py**: task creation with logged failures, cancel-and-wait
#
