"""archsetup: post-install provisioning for an Arch Linux desktop.

Core design goals:
- Resumable step pipeline with a persisted state file
- Idempotent steps (re-running never destroys user data)
- Build as the unprivileged user, install as root
- Centralized logging
"""

__all__ = []
