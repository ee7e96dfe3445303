"""
Utility constants for the CLI.

Exit codes are part of the command-line contract; scripts rely on them.
"""

# Exit codes (130 = common for SIGINT, 143 = 128 + SIGTERM)
EXIT_SUCCESS = 0
EXIT_API_OR_NETWORK = 1
EXIT_VALIDATION_OR_CONFIG = 2
EXIT_FILESYSTEM = 3
EXIT_CANCELLED = 130
EXIT_TERMINATED = 143


__all__ = [
    "EXIT_SUCCESS",
    "EXIT_API_OR_NETWORK",
    "EXIT_VALIDATION_OR_CONFIG",
    "EXIT_FILESYSTEM",
    "EXIT_CANCELLED",
    "EXIT_TERMINATED",
]
