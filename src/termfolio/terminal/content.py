"""Portfolio content shown by the informational commands.

Everything here is plain data so a deployment can replace it from the
YAML configuration without touching the command table.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

THEME_NAMES = ("dark", "light", "blue-matrix", "espresso", "green-goblin", "ubuntu")

DEFAULT_LOGO = r"""
 _                      __       _ _
| |_ ___ _ __ _ __ ___ / _| ___ | (_) ___
| __/ _ \ '__| '_ ` _ \ |_ / _ \| | |/ _ \
| ||  __/ |  | | | | | |  _| (_) | | | (_) |
 \__\___|_|  |_| |_| |_|_|  \___/|_|_|\___/
"""


class Link(BaseModel):
    """A numbered entry of the projects or socials listing."""

    model_config = ConfigDict(frozen=True)

    name: str
    url: str
    description: str = ""


class PortfolioContent(BaseModel):
    """Text and links behind the informational commands."""

    model_config = ConfigDict(frozen=True)

    owner: str = Field(default="the author")
    version: str = Field(default="0.1.0")
    logo: str = Field(default=DEFAULT_LOGO)
    about: str = Field(
        default=(
            "Hi, welcome to my terminal portfolio.\n"
            "\n"
            "I build software and like working close to the core.\n"
            "Type 'projects' to see what I have been working on."
        )
    )
    education: str = Field(
        default=(
            "Here is my education background!\n"
            "\n"
            "B.Sc. (Computer Science)"
        )
    )
    email: str = Field(default="hello@example.com")
    github_url: str = Field(default="https://github.com/")
    source_url: str = Field(default="https://github.com/")
    home_dir: str = Field(default="/home/guest")
    projects: list[Link] = Field(
        default_factory=lambda: [
            Link(
                name="termfolio",
                url="https://github.com/",
                description="This terminal-style portfolio with an account system.",
            ),
        ]
    )
    socials: list[Link] = Field(
        default_factory=lambda: [Link(name="GitHub", url="https://github.com/")]
    )
    themes: tuple[str, ...] = Field(default=THEME_NAMES)

    def banner(self) -> str:
        """Welcome screen written on startup and by ``welcome``."""
        lines = [
            self.logo.strip("\n"),
            "",
            f"Welcome to my terminal portfolio. (Version {self.version})",
            "----",
            "",
            f"This project's source code can be found at {self.source_url}",
            "----",
            "",
            "For a list of available commands, type 'help'.",
            "",
        ]
        return "\n".join(lines)

    def projects_listing(self) -> str:
        lines = ["Here are some of my projects you shouldn't miss", ""]
        for number, project in enumerate(self.projects, start=1):
            lines.append(f"{number}. {project.name}")
            if project.description:
                lines.append(f"   {project.description}")
            lines.append("")
        lines += [
            "Usage: projects go <project-no>",
            "eg: projects go 1",
            "",
            "More work and experiments live on GitHub.",
            "Type: github",
        ]
        return "\n".join(lines)

    def socials_listing(self) -> str:
        width = max((len(s.name) for s in self.socials), default=0)
        lines = ["Here are my social links", ""]
        for number, social in enumerate(self.socials, start=1):
            lines.append(f"{number}. {social.name.ljust(width)} - {social.url}")
        lines += ["", "Usage: socials go <social-no>", "eg: socials go 1"]
        return "\n".join(lines)

    def themes_listing(self) -> str:
        return "\n".join(
            [" ".join(self.themes), "", "Usage: themes set <theme-name>", "eg: themes set ubuntu"]
        )
