"""Project discovery from pom.xml files.

Everything here reads the POMs statically; Maven itself is never invoked.
"""

from __future__ import annotations

import concurrent.futures
import logging
import os
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from mvndash.errors import DiscoveryError
from mvndash.project.commands import ROOT_MODULE
from mvndash.project.strategy import Capabilities

logger = logging.getLogger(__name__)

POM = "pom.xml"

_MAIN_CLASS_PROPERTIES = ("start-class", "exec.mainClass", "main.class", "mainClass")


@dataclass
class ProjectInfo:
    """Everything a session needs to know about a project up front."""

    root: Path
    modules: list[str] = field(default_factory=lambda: [ROOT_MODULE])
    profiles: list[str] = field(default_factory=list)
    auto_profiles: list[str] = field(default_factory=list)
    capabilities: Capabilities = field(default_factory=Capabilities)


def find_project_root(path: str | os.PathLike[str]) -> Path | None:
    """Nearest directory at or above ``path`` that contains a pom.xml."""
    current = Path(path).expanduser().resolve()
    if current.is_file():
        current = current.parent
    for candidate in (current, *current.parents):
        if (candidate / POM).is_file():
            logger.debug("Found %s in %s", POM, candidate)
            return candidate
    logger.warning("No %s found at or above %s", POM, current)
    return None


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _children(element: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in element if _local(child.tag) == name]


def _child(element: ET.Element | None, name: str) -> ET.Element | None:
    if element is None:
        return None
    found = _children(element, name)
    return found[0] if found else None


def _text(element: ET.Element | None, name: str) -> str | None:
    child = _child(element, name)
    if child is None or child.text is None:
        return None
    return child.text.strip() or None


def _parse(pom: Path) -> ET.Element:
    try:
        return ET.parse(pom).getroot()
    except (OSError, ET.ParseError) as e:
        raise DiscoveryError(f"Cannot read {pom}: {e}") from e


def parse_modules(root_element: ET.Element) -> list[str]:
    """``<modules><module>`` entries; a POM without any is the root module."""
    modules = [
        module.text.strip()
        for section in _children(root_element, "modules")
        for module in _children(section, "module")
        if module.text and module.text.strip()
    ]
    if not modules:
        logger.info("No modules declared, treating as single-module project")
        return [ROOT_MODULE]
    return modules


def parse_profiles(root_element: ET.Element) -> tuple[list[str], list[str]]:
    """Profile ids and the subset that is active by default."""
    ids: list[str] = []
    active: list[str] = []
    for section in _children(root_element, "profiles"):
        for profile in _children(section, "profile"):
            profile_id = _text(profile, "id")
            if profile_id is None:
                continue
            ids.append(profile_id)
            if _text(_child(profile, "activation"), "activeByDefault") == "true":
                active.append(profile_id)
    return ids, active


def parse_capabilities(root_element: ET.Element) -> Capabilities:
    has_spring_boot = False
    has_exec = False
    main_class: str | None = None
    version: str | None = None

    parent = _child(root_element, "parent")
    if _text(parent, "artifactId") == "spring-boot-starter-parent":
        version = _text(parent, "version")

    for element in root_element.iter():
        if _local(element.tag) != "plugin":
            continue
        artifact = _text(element, "artifactId")
        configuration = _child(element, "configuration")
        if artifact == "spring-boot-maven-plugin":
            has_spring_boot = True
            version = version or _text(element, "version")
            main_class = main_class or _text(configuration, "mainClass")
        elif artifact == "exec-maven-plugin":
            has_exec = True
            main_class = main_class or _text(configuration, "mainClass")

    properties = _child(root_element, "properties")
    for name in _MAIN_CLASS_PROPERTIES:
        if main_class:
            break
        main_class = _text(properties, name)

    return Capabilities(
        has_spring_boot_plugin=has_spring_boot,
        has_exec_plugin=has_exec,
        main_class=main_class,
        packaging=_text(root_element, "packaging"),
        spring_boot_version=version,
    )


def scan_project(path: str | os.PathLike[str]) -> ProjectInfo:
    """Locate the project root above ``path`` and read its POMs.

    Profiles declared in module POMs are merged with the root's.

    Raises:
        DiscoveryError: no pom.xml was found or it cannot be parsed.
    """
    root = find_project_root(path)
    if root is None:
        raise DiscoveryError(f"No {POM} found at or above {path}")

    root_element = _parse(root / POM)
    modules = parse_modules(root_element)
    profiles, auto_profiles = parse_profiles(root_element)
    capabilities = parse_capabilities(root_element)

    for module in modules:
        if module == ROOT_MODULE:
            continue
        module_pom = root / module / POM
        if not module_pom.is_file():
            continue
        try:
            module_element = _parse(module_pom)
        except DiscoveryError as e:
            logger.warning("Skipping module POM: %s", e)
            continue
        ids, active = parse_profiles(module_element)
        profiles += [p for p in ids if p not in profiles]
        auto_profiles += [p for p in active if p not in auto_profiles]
        if not (capabilities.has_spring_boot_plugin or capabilities.has_exec_plugin):
            module_caps = parse_capabilities(module_element)
            if module_caps.has_spring_boot_plugin or module_caps.has_exec_plugin:
                capabilities = module_caps

    logger.info(
        "Discovered %s: %d module(s), %d profile(s)", root, len(modules), len(profiles)
    )
    return ProjectInfo(
        root=root,
        modules=modules,
        profiles=sorted(profiles),
        auto_profiles=sorted(auto_profiles),
        capabilities=capabilities,
    )


def discover_project(
    path: str | os.PathLike[str],
    timeout: float = 30.0,
    scanner: Callable[[str | os.PathLike[str]], ProjectInfo] = scan_project,
) -> ProjectInfo:
    """Run ``scanner`` on a worker thread, giving up after ``timeout`` seconds.

    A scan that times out keeps running in the background; its result is
    discarded.

    Raises:
        DiscoveryError: the scan failed or did not finish in time.
    """
    executor = concurrent.futures.ThreadPoolExecutor(
        max_workers=1, thread_name_prefix="discovery"
    )
    try:
        future = executor.submit(scanner, path)
        try:
            return future.result(timeout=timeout)
        except concurrent.futures.TimeoutError as e:
            future.cancel()
            raise DiscoveryError(
                f"Project discovery for {path} timed out after {timeout:.0f}s"
            ) from e
        except DiscoveryError:
            raise
        except Exception as e:
            logger.exception("Project discovery for %s failed", path)
            raise DiscoveryError(f"Project discovery for {path} failed: {e}") from e
    finally:
        executor.shutdown(wait=False)
