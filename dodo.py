# -*- coding: utf-8 -*-
# pydoit task file, see https://pydoit.org/
# run from this dir with `doit`, or `doit list` (pip install doit first)

from doit.action import CmdAction

TEST_HELP = """echo '
{title}
====================

Filter Options:
  -k, --keyword TEXT    Only run tests matching the keyword expression
                        Example: -k "session and not timeout"
  -s, --speed TEXT      "slow", "not slow"/"fast" or "all"
  -r, --retry           Only run previously failed tests

Output Options:
  -p, --print-logs      Print logs to console instead of capturing
  -f, --full-trace      Show full traceback on errors
  -t, --show-time       Display duration of all tests
  '"""

TEST_PARAMS = [
    {"name": "help", "long": "help", "default": False, "type": bool},
    {"name": "keyword", "short": "k", "default": ""},
    {"name": "speed", "short": "s", "default": ""},
    {"name": "retry", "short": "r", "default": False, "type": bool},
    {"name": "print_logs", "short": "p", "default": False, "type": bool},
    {"name": "full_trace", "short": "f", "default": False, "type": bool},
    {"name": "show_time", "short": "t", "default": False, "type": bool},
]


def _build_pytest_command(
    test_dir,
    keyword="",
    speed="",
    retry=False,
    print_logs=False,
    full_trace=False,
    show_time=False,
):
    """Build a pytest command line for the test tasks."""
    cmd = ["pytest"]
    if print_logs:
        cmd.append("--capture=no")
    if full_trace:
        cmd.append("--full-trace")
    if show_time:
        cmd.append("--durations=0")
    cmd.extend(["--color=yes", "-vv", "-x"])
    if retry:
        cmd.append("--lf")
    if keyword:
        cmd.extend(["-k", keyword])
    if speed == "slow":
        cmd.extend(["-m", "slow"])
    elif speed in ["not slow", "fast"]:
        cmd.extend(["-m", '"not slow"'])
    elif speed not in ["", "all"]:
        raise ValueError(
            f"Invalid speed filter: {speed}. Use 'slow', 'not slow', 'fast', or 'all'"
        )
    cmd.append(test_dir)
    return " ".join(cmd)


def _test_task(test_dir, title):
    def router(keyword, speed, retry, print_logs, full_trace, show_time, help=False):
        if help:
            return TEST_HELP.format(title=title)
        try:
            return _build_pytest_command(
                test_dir,
                keyword=keyword,
                speed=speed,
                retry=retry,
                print_logs=print_logs,
                full_trace=full_trace,
                show_time=show_time,
            )
        except ValueError as e:
            return f"echo 'Error: {str(e)}' && exit 1"

    return {"actions": [CmdAction(router)], "params": TEST_PARAMS, "verbosity": 2}


def task_install():
    """Install boardscope in editable mode, with test extras"""
    return {"actions": ["pip install -e .[test]"], "verbosity": 2}


def task_test_logic():
    """Run the logic test suite (tests in test/logic/), no hardware needed."""
    return _test_task("test/logic/", "Test Logic Runner Help")


def task_test_hardware():
    """Run the hardware test suite (tests in test/hardware/)."""
    return _test_task("test/hardware/", "Test Hardware Runner Help")


def task_format():
    """Format code using ruff."""
    return {
        "actions": [
            "ruff check --select I --fix src/boardscope test/ dodo.py",
            "ruff format src/boardscope test/ dodo.py",
        ],
        "verbosity": 2,
    }


def task_docs():
    """Generate documentation using pdoc3."""
    return {
        "actions": [
            "pdoc3 --output-dir docs/ --html --force --skip-errors ./src/boardscope/"
        ],
        "verbosity": 2,
    }
