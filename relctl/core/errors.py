"""Exit codes for relctl commands.

The numeric values are process exit codes and must remain stable, since
release pipelines branch on them.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    - 0: Success
    - 1: User error (bad input files, unsafe release requested)
    - 2: Environment error (missing artifacts, bad config)
    - 3: Deploy error (a deployment or ownership transfer failed)
    - 4: Network error (RPC node or registry unreachable)
    - 5: I/O error (proposal could not be written)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    DEPLOY_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
