import os
import sys


def repo_root():
    if "REPO_ROOT" in os.environ:
        return os.environ["REPO_ROOT"]
    prev_location = None
    start_location = os.path.abspath(os.path.dirname(sys.argv[0] or "."))
    while start_location != prev_location:
        dir_content = os.listdir(start_location) if os.path.isdir(start_location) else []
        if "pyproject.toml" in dir_content or ".git" in dir_content:
            return start_location
        prev_location = start_location
        start_location = os.path.dirname(start_location)
    return os.getcwd()


def repo_name():
    if "REPO_NAME" in os.environ:
        return os.environ["REPO_NAME"]
    return os.path.basename(repo_root())
