"""
Unit tests for PromptAssembler: section order, capability note and
reference image attachment.
"""

import pytest

from ailand.config.resolver import ConfigResolver
from ailand.config.settings import PromptSettings, ScopeOverrides, Settings
from ailand.context.models import GenerationContext
from ailand.llm.errors import TemplateUnavailable
from ailand.llm.models import ImagePart, Message, Role, TextPart
from ailand.prompts.assembler import GRAPHQL_INSTRUCTION, PromptAssembler
from ailand.prompts.conversation import Conversation
from ailand.prompts.templates import InMemoryTemplateStore


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def resolver():
    settings = Settings(
        prompts=PromptSettings(product_base_prompt="Sell the product."),
        scopes={2: ScopeOverrides(base_prompts={"product_base_prompt": "Store 2 goal."})},
    )
    return ConfigResolver(settings)


@pytest.fixture
def assembler(resolver):
    templates = InMemoryTemplateStore({"sys": "  sys-body\n", "blank": "   "})
    return PromptAssembler(templates, resolver)


def _wire(conversation: Conversation) -> list[dict]:
    return conversation.to_wire()


# ---------------------------------------------------------------------------
# Test Classes
# ---------------------------------------------------------------------------

class TestBuildMessages:

    def test_store_context_only(self, assembler):
        context = GenerationContext(store_context="S", data_source_context="")

        conversation = assembler.build_messages("sys", context, "DO X", False)

        assert _wire(conversation) == [
            {"role": "system", "content": "sys-body"},
            {"role": "user", "content": "Store Context:\nS"},
            {"role": "user", "content": "DO X"},
        ]

    def test_full_section_order(self, assembler):
        context = GenerationContext(
            store_context="S",
            data_source_context="Name: Lamp",
            data_source_type="product",
            styling_reference_html="<section/>",
        )

        conversation = assembler.build_messages(
            "sys",
            context,
            "MAIN",
            capability_note_enabled=True,
            artifacts=["Technical Design Plan:\nPLAN", None, "Style"],
        )

        contents = [m.content for m in conversation]
        assert contents == [
            "sys-body",
            "Store Context:\nS",
            "Data Source Context:\nName: Lamp",
            "Styling Reference HTML:\n<section/>",
            "Technical Design Plan:\nPLAN",
            "Style",
            GRAPHQL_INSTRUCTION,
            "MAIN",
        ]
        assert conversation[0].role is Role.SYSTEM
        assert all(m.role is Role.USER for m in conversation.messages[1:])

    def test_empty_context_gives_system_and_instruction(self, assembler):
        conversation = assembler.build_messages("sys", GenerationContext(), "ONLY")

        assert [m.content for m in conversation] == ["sys-body", "ONLY"]

    def test_missing_template(self, assembler):
        with pytest.raises(TemplateUnavailable):
            assembler.build_messages("absent", GenerationContext(), "X")

    def test_blank_template(self, assembler):
        with pytest.raises(TemplateUnavailable):
            assembler.load_template("blank")


class TestCapabilityInstruction:

    def test_disabled_is_noop(self):
        conversation = Conversation([Message.user("a")])
        PromptAssembler.maybe_add_capability_instruction(conversation, False)
        assert len(conversation) == 1

    def test_enabled_appends_note(self):
        conversation = Conversation([Message.user("a")])
        PromptAssembler.maybe_add_capability_instruction(conversation, True)
        assert conversation.last.content == GRAPHQL_INSTRUCTION


class TestContentGoal:

    def test_global_setting(self, assembler):
        assert assembler.content_goal("product") == "Sell the product."

    def test_scope_override(self, assembler):
        assert assembler.content_goal("product", scope=2) == "Store 2 goal."


class TestReferenceImage:

    def test_plain_text_user_message_becomes_parts(self):
        conversation = Conversation([Message.system("s"), Message.user("Goal")])

        PromptAssembler.attach_reference_image(conversation, " https://img.test/a.png ")

        content = conversation.last.content
        assert content[0] == TextPart(text="Goal")
        assert isinstance(content[-1], ImagePart)
        assert content[-1].image_url.url == "https://img.test/a.png"
        assert len(conversation) == 2

    def test_multimodal_message_keeps_parts(self):
        conversation = Conversation([Message.user([TextPart(text="one"), TextPart(text="two")])])

        PromptAssembler.attach_reference_image(conversation, "https://img.test/b.png")

        content = conversation.last.content
        assert [part.type for part in content] == ["text", "text", "image_url"]

    def test_non_user_last_message_gets_new_message(self):
        conversation = Conversation([Message.system("s")])

        PromptAssembler.attach_reference_image(conversation, "https://img.test/c.png")

        assert len(conversation) == 2
        assert conversation.last.role is Role.USER
        assert conversation.last.to_wire()["content"] == [
            {"type": "text", "text": "Reference Image:"},
            {"type": "image_url", "image_url": {"url": "https://img.test/c.png"}},
        ]

    @pytest.mark.parametrize("url", [None, "", "   "])
    def test_blank_url_is_noop(self, url):
        conversation = Conversation([Message.user("Goal")])

        PromptAssembler.attach_reference_image(conversation, url)

        assert conversation.last.content == "Goal"

    def test_original_message_not_modified(self):
        original = Message.user("Goal")
        conversation = Conversation([original])

        PromptAssembler.attach_reference_image(conversation, "https://img.test/d.png")

        assert original.content == "Goal"
