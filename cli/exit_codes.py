"""Process exit codes shared by the CLI commands."""

EXIT_FAILURE = 1
# sysexits.h EX_TEMPFAIL: the caller may retry
EXIT_RETRY = 75


def exit_code_for(error) -> int:
    """Exit code for a taxonomy error: retryable kinds get EXIT_RETRY."""
    return EXIT_RETRY if error.retryable else EXIT_FAILURE
