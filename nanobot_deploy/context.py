from __future__ import annotations

from .config import DeployConfig
from .host import probe_host
from .installer import DockerInstaller
from .pipeline import SetupContext
from .profiles import Profile
from .prompts import AssumeYesPrompter, ConsolePrompter, Prompter
from .runtime import DockerRuntime
from .shell import Shell, SubprocessShell


def build_context(
    config: DeployConfig,
    profile: Profile,
    *,
    shell: Shell | None = None,
    assume_yes: bool = False,
) -> SetupContext:
    shell = shell or SubprocessShell()
    prompter: Prompter = ConsolePrompter()
    if assume_yes:
        prompter = AssumeYesPrompter(prompter)
    return SetupContext(
        config=config,
        profile=profile,
        host=probe_host(shell, user=config.user, runtime_group=config.runtime_group),
        shell=shell,
        runtime=DockerRuntime(shell),
        installer=DockerInstaller(shell, url=config.installer_url, group=config.runtime_group),
        prompter=prompter,
    )
