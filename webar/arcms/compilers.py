# arcms/compilers.py
"""
Image-target compilers.

A compiler turns the current set of marker images into one opaque tracking
descriptor (a MindAR ``.mind`` file). The work is always done by something
outside this project: a hosted compile function reached over HTTP, or a local
command such as the ``mindar-image`` CLI or a headless-browser script.
"""

import functools
import logging
import shlex
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path

import requests
from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from .conf import get_config

logger = logging.getLogger(__name__)

INPUTS_PLACEHOLDER = "{inputs}"
OUTPUT_PLACEHOLDER = "{output}"


class CompilerError(Exception):
    """The external compiler failed or returned something unusable."""


@dataclass(frozen=True)
class TargetImage:
    name: str
    content: bytes
    content_type: str = "application/octet-stream"


class BaseCompiler:
    """compile(images) -> descriptor bytes. Images arrive in target-index order."""

    def __init__(self, config):
        self.config = config

    def compile(self, images):
        raise NotImplementedError


class HttpCompiler(BaseCompiler):
    """POST the images to a hosted compile endpoint, the response body is the descriptor."""

    def __init__(self, config):
        super().__init__(config)
        if not config.compiler_url:
            raise ImproperlyConfigured(
                "HttpCompiler needs WEBAR['COMPILER_URL'] (the hosted compile endpoint)"
            )
        self.url = config.compiler_url
        self.timeout = config.compiler_timeout

    def compile(self, images):
        files = [
            ("images", (image.name, image.content, image.content_type))
            for image in images
        ]
        logger.info("Sending %d marker images to %s", len(files), self.url)

        try:
            response = requests.post(self.url, files=files, timeout=self.timeout)
        except requests.RequestException as e:
            raise CompilerError(f"Compile request failed: {e}") from e

        if not response.ok:
            raise CompilerError(
                f"Compiler responded {response.status_code}: {response.text[:200]}"
            )
        if not response.content:
            raise CompilerError("Compiler returned an empty descriptor")

        logger.info("Compiler returned %d bytes", len(response.content))
        return response.content


class CommandCompiler(BaseCompiler):
    """
    Run a local command that compiles image files into a descriptor file.

    COMPILER_COMMAND is split like a shell command line. ``{inputs}`` must be an
    argument of its own and expands to one path per image. ``{output}`` is
    replaced by the path the command must write, also inside a longer argument
    such as ``--out={output}``, e.g.::

        mindar-image --output {output} --input {inputs}
        node scripts/generate-mind-file.js {output} {inputs}
    """

    def __init__(self, config):
        super().__init__(config)
        if not config.compiler_command:
            raise ImproperlyConfigured(
                "CommandCompiler needs WEBAR['COMPILER_COMMAND']"
            )
        self.argv = shlex.split(config.compiler_command)
        if OUTPUT_PLACEHOLDER not in " ".join(self.argv):
            raise ImproperlyConfigured(
                f"WEBAR['COMPILER_COMMAND'] must contain {OUTPUT_PLACEHOLDER}"
            )
        if any(INPUTS_PLACEHOLDER in arg and arg != INPUTS_PLACEHOLDER for arg in self.argv):
            raise ImproperlyConfigured(
                f"{INPUTS_PLACEHOLDER} must be a separate argument in WEBAR['COMPILER_COMMAND']"
            )
        self.timeout = config.compiler_timeout

    def resolve_executable(self):
        executable = self.argv[0]
        found = shutil.which(executable)
        if found:
            return found
        if Path(executable).exists():
            return executable
        raise CompilerError(f"Compiler executable not found: {executable}")

    def build_command(self, input_paths, output_path):
        command = [self.resolve_executable()]
        for arg in self.argv[1:]:
            if arg == INPUTS_PLACEHOLDER:
                command.extend(str(p) for p in input_paths)
            else:
                command.append(arg.replace(OUTPUT_PLACEHOLDER, str(output_path)))
        return command

    def compile(self, images):
        with tempfile.TemporaryDirectory(prefix="webar-compile-") as workdir:
            workdir = Path(workdir)
            input_paths = []
            for index, image in enumerate(images):
                suffix = Path(image.name).suffix or ".png"
                path = workdir / f"target-{index:03d}{suffix}"
                path.write_bytes(image.content)
                input_paths.append(path)

            output_path = workdir / "targets.mind"
            command = self.build_command(input_paths, output_path)
            logger.info("Running compiler: %s", " ".join(command))

            try:
                result = subprocess.run(
                    command,
                    check=True,
                    capture_output=True,
                    text=True,
                    cwd=workdir,
                    timeout=self.timeout,
                )
            except subprocess.CalledProcessError as e:
                raise CompilerError(
                    f"Compiler exited with status {e.returncode}: {(e.stderr or '').strip()[:500]}"
                ) from e
            except subprocess.TimeoutExpired as e:
                raise CompilerError(f"Compiler timed out after {self.timeout}s") from e
            except OSError as e:
                raise CompilerError(f"Could not run compiler: {e}") from e

            if result.stderr:
                logger.debug("Compiler stderr: %s", result.stderr.strip())

            if not output_path.exists():
                raise CompilerError(f"Compiler did not write {output_path.name}")
            data = output_path.read_bytes()
            if not data:
                raise CompilerError("Compiler wrote an empty descriptor")
            return data


@functools.lru_cache(maxsize=None)
def get_compiler():
    """Instantiate the configured compiler backend once."""
    config = get_config()
    try:
        backend = import_string(config.compiler_backend)
    except ImportError as e:
        raise ImproperlyConfigured(
            f"Cannot import compiler backend {config.compiler_backend!r}: {e}"
        ) from e
    return backend(config)
