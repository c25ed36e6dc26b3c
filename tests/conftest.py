"""Shared fixtures: a registry loaded with small test macros."""

import pytest

from wikiblocks.adapters.macro_registry import MacroRegistry
from wikiblocks.adapters.xwiki_parser import XWikiParser
from wikiblocks.core.errors import MacroExecutionError
from wikiblocks.core.macro import AbstractMacro, MacroDescriptor, ParameterDescriptor
from wikiblocks.core.model import BlockKind, macro_block, paragraph, word
from wikiblocks.transform.macro import MacroTransformation


class SimpleMacro(AbstractMacro):
    """Outputs ``simplemacroN``, N being the number of words in the document."""

    def execute(self, parameters, content, context):
        count = len(context.document.find_by_type(BlockKind.WORD))
        return [paragraph([word(f"simplemacro{count}")])]


class NestedMacro(AbstractMacro):
    def execute(self, parameters, content, context):
        return [macro_block("testsimplemacro")]


class RecursiveMacro(AbstractMacro):
    def execute(self, parameters, content, context):
        return [macro_block("testrecursivemacro")]


class PriorityMacro(AbstractMacro):
    def execute(self, parameters, content, context):
        return [paragraph([word("word")])]


class ContentMacro(AbstractMacro):
    def execute(self, parameters, content, context):
        return context.parse_content(content or "")


class FailingMacro(AbstractMacro):
    def execute(self, parameters, content, context):
        raise MacroExecutionError("Something went wrong", "details")


class InlineMacro(AbstractMacro):
    def execute(self, parameters, content, context):
        return [paragraph([word(parameters.get("text", "inline"))])]


def make_registry() -> MacroRegistry:
    registry = MacroRegistry()
    registry.register("testsimplemacro", SimpleMacro())
    registry.register("testnestedmacro", NestedMacro())
    registry.register("testrecursivemacro", RecursiveMacro())
    registry.register("testprioritymacro", PriorityMacro(priority=10))
    registry.register("testcontentmacro", ContentMacro())
    registry.register("testfailingmacro", FailingMacro())
    registry.register(
        "testinlinemacro",
        InlineMacro(
            descriptor=MacroDescriptor(
                name="Inline",
                parameters=(ParameterDescriptor("text", default="inline"),),
            ),
            inline=True,
        ),
    )
    return registry


@pytest.fixture
def registry():
    return make_registry()


@pytest.fixture
def parser():
    return XWikiParser()


@pytest.fixture
def transformation(registry, parser):
    return MacroTransformation(registry, parser)
