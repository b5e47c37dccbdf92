"""Tests for the Drawing API documentation and system prompt."""

from code_canvas.canvas import DrawingContext
from code_canvas.prompts import build_system_prompt, get_interface_documentation


class TestInterfaceDocumentation:
    def test_documents_every_operation(self) -> None:
        docs = get_interface_documentation()
        for name in (
            "rectangle",
            "rect",
            "circle",
            "triangle",
            "line",
            "path",
            "arc",
            "text",
            "advance_layer",
            "layer",
        ):
            assert f"ctx.{name}(" in docs, name

    def test_documented_operations_exist(self) -> None:
        ctx = DrawingContext()
        for name in ("rectangle", "rect", "circle", "triangle", "line", "path", "arc", "text"):
            assert callable(getattr(ctx, name))

    def test_states_conventions(self) -> None:
        docs = get_interface_documentation()
        assert "TOP-LEFT" in docs
        assert "DEGREES" in docs
        assert "0 = right, 90 = down" in docs


class TestBuildSystemPrompt:
    def test_embeds_docs_and_canvas(self) -> None:
        prompt = build_system_prompt(256, max_attempts=5)
        assert "Canvas: 256x256 pixels" in prompt
        assert "(128, 128)" in prompt
        assert get_interface_documentation() in prompt
        assert "at most 5 executions" in prompt

    def test_sections(self) -> None:
        prompt = build_system_prompt()
        for section in ("LAYERS:", "WORKFLOW:", "COMMON PATTERNS:", "RULES:"):
            assert section in prompt

    def test_defaults_from_settings(self) -> None:
        assert "Canvas: 512x512 pixels" in build_system_prompt()
