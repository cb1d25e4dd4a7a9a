# -*- coding: utf-8 -*-
"""Run all tests for `rconditions`.

The test modules are plain functions that `assert`, so any test runner that
collects `test_*` functions (e.g. `pytest`) can run them, too. This script
runs them without extra dependencies, each module in its own testset.
"""

import os
import re
import sys
from importlib import import_module

from rconditions.test.fixtures import session, testset, tests_errored, tests_failed
from rconditions.box import unbox

def listtestmodules(path):
    testfiles = listtestfiles(path)
    testmodules = [modname(path, fn) for fn in testfiles]
    return list(sorted(testmodules))

def listtestfiles(path, prefix="test_", suffix=".py"):
    return [fn for fn in os.listdir(path) if fn.startswith(prefix) and fn.endswith(suffix)]

def modname(path, filename):  # some/dir/mod.py --> some.dir.mod
    modpath = re.sub(re.escape(os.path.sep), r".", path)
    themod = re.sub(r"\.py$", r"", filename)
    return ".".join([modpath, themod])

def main():
    with session():
        for m in listtestmodules(os.path.join("rconditions", "tests")):
            # Wrap each module in its own testset to protect the session against ImportError.
            with testset(m):
                mod = import_module(m)
                mod.runtests()
    all_passed = (unbox(tests_failed) + unbox(tests_errored)) == 0
    return all_passed

if __name__ == '__main__':
    if not main():
        sys.exit(1)  # pragma: no cover, this only runs when the tests fail.
