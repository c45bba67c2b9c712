#
# PURPOSE:
# Foundational pieces the rest of ReconForge depends on.
#
# WHAT'S IN THIS MODULE:
# - config.py: Application configuration (storage paths, tool binaries and
#   timeouts, probe defaults, logging)
# - exceptions.py: Tool invocation and job lifecycle exceptions
#
