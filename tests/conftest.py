"""Pytest configuration and fixtures for codebase-relations tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator

import pytest


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp()).resolve()
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def make_project(temp_dir: Path) -> Callable[[Dict[str, str]], Path]:
    """Write a set of files below temp_dir and return the project root."""

    def _make(files: Dict[str, str]) -> Path:
        for rel_path, content in files.items():
            path = temp_dir / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return temp_dir

    return _make


@pytest.fixture
def sample_typescript_code() -> str:
    """TypeScript source covering every kind of extracted entity."""
    return """import React, { useState } from 'react';
import * as path from 'path';
import { helper } from './utils';
const fs = require('fs');

export async function loadUser(id: string, opts?: Options): Promise<User> {
  try {
    return await fetchUser(id);
  } catch (err) {
    throw err;
  }
}

export const formatName = (first: string, last = "") => `${first} ${last}`;

class UserService {
  private cache = new Map();

  async get(id: string) {
    return fetch(`/api/users/${id}`).catch((e) => null);
  }
}
"""


@pytest.fixture
def sample_python_code() -> str:
    """Python source covering every kind of extracted entity."""
    return '''import os
from .utils import helper as h
from . import pkg


def add(a, b=1, *args, key=None, **kwargs):
    return a + b


async def fetch(url):
    try:
        return await get(url)
    except ValueError as exc:
        raise RuntimeError(url) from exc


square = lambda x: x * x


class Calculator:
    def multiply(self, a, b):
        return a * b
'''
