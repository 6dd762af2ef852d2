"""Built-in post-install script templates.

Each template wraps one script step for a common setup task and names
the packages that make it worth suggesting.
"""

from collections.abc import Iterable

from pakky.models.script import (
    InputSpec,
    ScriptStep,
    ScriptTemplate,
    TemplateCategory,
    ValidationKind,
)

SCRIPT_TEMPLATES: tuple[ScriptTemplate, ...] = (
    ScriptTemplate(
        id="git-config",
        name="Configure Git",
        description="Set up Git username, email, and common settings",
        category="git",
        suggested_for=("git", "gh"),
        step=ScriptStep(
            name="Configure Git",
            condition="package_installed:git",
            prompt_for_input={
                "user.name": InputSpec(message="Enter your Git username", default="Your Name"),
                "user.email": InputSpec(
                    message="Enter your Git email",
                    validation=ValidationKind.EMAIL,
                ),
            },
            commands=(
                "git config --global user.name '{{user.name}}'",
                "git config --global user.email '{{user.email}}'",
                "git config --global init.defaultBranch main",
                "git config --global pull.rebase false",
            ),
            continue_on_error=True,
        ),
    ),
    ScriptTemplate(
        id="ssh-keygen",
        name="Generate SSH Key",
        description="Create a new SSH key for GitHub/GitLab authentication",
        category="ssh",
        suggested_for=("git", "gh"),
        step=ScriptStep(
            name="Setup SSH Key",
            prompt="Generate SSH key for GitHub?",
            prompt_for_input={
                "email": InputSpec(
                    message="Enter your email for SSH key",
                    validation=ValidationKind.EMAIL,
                ),
            },
            commands=(
                "ssh-keygen -t ed25519 -C '{{email}}' -f ~/.ssh/id_ed25519 -N ''",
                # eval is never allowed; macOS starts an agent per login session
                "ssh-add ~/.ssh/id_ed25519",
            ),
            continue_on_error=True,
        ),
    ),
    ScriptTemplate(
        id="npm-globals",
        name="Install NPM Global Packages",
        description="Install commonly used global npm packages (pnpm, yarn, typescript)",
        category="npm",
        suggested_for=("node", "npm"),
        step=ScriptStep(
            name="Install Global NPM Packages",
            condition="package_installed:node",
            commands=("npm install -g pnpm yarn typescript eslint prettier",),
            continue_on_error=True,
        ),
    ),
    ScriptTemplate(
        id="oh-my-zsh",
        name="Install Oh My Zsh",
        description="Install Oh My Zsh framework for zsh customization",
        category="shell",
        suggested_for=("zsh",),
        step=ScriptStep(
            name="Install Oh My Zsh",
            condition="macos",
            prompt="Install Oh My Zsh?",
            commands=(
                'sh -c "$(curl -fsSL https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh)" "" --unattended',  # noqa: E501
            ),
            continue_on_error=True,
        ),
    ),
    ScriptTemplate(
        id="zsh-plugins",
        name="Install Zsh Plugins",
        description="Install zsh-autosuggestions and zsh-syntax-highlighting",
        category="shell",
        suggested_for=("zsh",),
        step=ScriptStep(
            name="Install Zsh Plugins",
            condition="macos",
            commands=(
                "git clone https://github.com/zsh-users/zsh-autosuggestions ${ZSH_CUSTOM:-~/.oh-my-zsh/custom}/plugins/zsh-autosuggestions",  # noqa: E501
                "git clone https://github.com/zsh-users/zsh-syntax-highlighting ${ZSH_CUSTOM:-~/.oh-my-zsh/custom}/plugins/zsh-syntax-highlighting",  # noqa: E501
            ),
            continue_on_error=True,
        ),
    ),
    ScriptTemplate(
        id="python-setup",
        name="Setup Python Environment",
        description="Install pip packages and configure Python",
        category="system",
        suggested_for=("python", "python3"),
        step=ScriptStep(
            name="Setup Python Environment",
            condition="package_installed:python",
            commands=(
                "pip3 install --upgrade pip",
                "pip3 install virtualenv pipenv",
            ),
            continue_on_error=True,
        ),
    ),
    ScriptTemplate(
        id="vscode-extensions",
        name="Install VS Code Extensions",
        description="Install recommended VS Code extensions",
        category="system",
        suggested_for=("visual-studio-code",),
        step=ScriptStep(
            name="Install VS Code Extensions",
            condition="package_installed:visual-studio-code",
            commands=(
                "code --install-extension dbaeumer.vscode-eslint",
                "code --install-extension esbenp.prettier-vscode",
                "code --install-extension bradlc.vscode-tailwindcss",
                "code --install-extension eamodio.gitlens",
            ),
            continue_on_error=True,
        ),
    ),
    ScriptTemplate(
        id="docker-setup",
        name="Configure Docker",
        description="Start Docker and verify installation",
        category="system",
        suggested_for=("docker",),
        step=ScriptStep(
            name="Configure Docker",
            condition="package_installed:docker",
            commands=("open -a Docker",),
            continue_on_error=True,
        ),
    ),
)


def get_suggested_templates(package_names: Iterable[str]) -> list[ScriptTemplate]:
    """Return templates relevant to the given packages.

    A template is suggested when any of its ``suggested_for`` entries is
    a substring of a package name (case-insensitive).

    Args:
        package_names: Queued or installed package names.

    Returns:
        Matching templates in catalogue order.
    """
    lower_names = [name.lower() for name in package_names]
    return [
        template
        for template in SCRIPT_TEMPLATES
        if any(pkg in name for pkg in template.suggested_for for name in lower_names)
    ]


def get_templates_by_category(category: TemplateCategory) -> list[ScriptTemplate]:
    """Return all templates of one category."""
    return [template for template in SCRIPT_TEMPLATES if template.category == category]


def get_template_by_id(template_id: str) -> ScriptTemplate | None:
    """Find a template by id."""
    for template in SCRIPT_TEMPLATES:
        if template.id == template_id:
            return template
    return None


def templates_to_steps(template_ids: Iterable[str]) -> list[ScriptStep]:
    """Convert template ids to their steps; unknown ids are dropped."""
    steps: list[ScriptStep] = []
    for template_id in template_ids:
        template = get_template_by_id(template_id)
        if template is not None:
            steps.append(template.step)
    return steps
