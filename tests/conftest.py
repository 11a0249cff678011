# tests/conftest.py
import io

import pytest

from bfvm import Diagnostics, Engine, VMConfig


@pytest.fixture
def make_engine():
    """Build an engine over in-memory program text, input and output."""
    def _make(code, input_data="", **config_kwargs):
        data = code.encode("utf-8") if isinstance(code, str) else code
        config = VMConfig(**config_kwargs)
        return Engine.from_bytes(
            data,
            config=config,
            diagnostics=Diagnostics(echo=False),
            stdin=io.StringIO(input_data),
            stdout=io.StringIO(),
        )
    return _make


@pytest.fixture
def run(make_engine):
    """Run a program to completion; returns (result, engine)."""
    def _run(code, input_data="", **config_kwargs):
        engine = make_engine(code, input_data, **config_kwargs)
        return engine.run(), engine
    return _run


@pytest.fixture(params=[False, True], ids=["streaming", "precompiled"])
def precompile(request):
    return request.param
