import pytest
from aws_cdk.assertions import Template

from helpers import build_stack


@pytest.fixture
def built():
    return build_stack()


@pytest.fixture
def stack(built):
    return built[0]


@pytest.fixture
def core(built):
    return built[1]


@pytest.fixture
def containers(built):
    return built[2]


@pytest.fixture
def template(stack):
    return Template.from_stack(stack)
