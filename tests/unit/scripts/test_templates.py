"""Unit tests for the built-in script templates."""

import pytest
from pakky.models.script import ScriptTemplate
from pakky.scripts.security import SecurityLevel, check_command
from pakky.scripts.templates import (
    SCRIPT_TEMPLATES,
    get_suggested_templates,
    get_template_by_id,
    get_templates_by_category,
    templates_to_steps,
)


class TestCatalogue:
    """Tests for the template catalogue itself."""

    def test_ids_are_unique(self) -> None:
        """No two templates share an id."""
        ids = [template.id for template in SCRIPT_TEMPLATES]
        assert len(ids) == len(set(ids))

    @pytest.mark.parametrize("template", SCRIPT_TEMPLATES, ids=lambda t: t.id)
    def test_commands_pass_permissive_allow_list(self, template: ScriptTemplate) -> None:
        """Every built-in command is runnable at permissive level."""
        for command in template.step.commands:
            check_command(command, SecurityLevel.PERMISSIVE)


class TestLookups:
    """Tests for the template lookup functions."""

    def test_suggested_for_git(self) -> None:
        """git suggests the git and SSH templates."""
        ids = [template.id for template in get_suggested_templates(["git"])]
        assert ids == ["git-config", "ssh-keygen"]

    def test_suggestion_is_substring_and_case_insensitive(self) -> None:
        """Suggestions match substrings of the names regardless of case."""
        ids = [template.id for template in get_suggested_templates(["Python@3.12"])]
        assert ids == ["python-setup"]

    def test_no_suggestions(self) -> None:
        """Unrelated packages suggest nothing."""
        assert get_suggested_templates(["ripgrep"]) == []

    def test_by_category(self) -> None:
        """Templates can be listed per category."""
        ids = [template.id for template in get_templates_by_category("shell")]
        assert ids == ["oh-my-zsh", "zsh-plugins"]

    def test_by_id(self) -> None:
        """Templates are found by id; unknown ids give None."""
        template = get_template_by_id("docker-setup")
        assert template is not None
        assert template.step.condition == "package_installed:docker"
        assert get_template_by_id("nope") is None

    def test_templates_to_steps(self) -> None:
        """Known ids map to their steps in order; unknown ids are dropped."""
        steps = templates_to_steps(["npm-globals", "nope", "git-config"])
        assert [step.name for step in steps] == ["Install Global NPM Packages", "Configure Git"]
