from pytest_trio.enable_trio_mode import *  # noqa: F401,F403
