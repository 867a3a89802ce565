"""Compiler backends for tests, no external tools involved."""
from arcms.compilers import BaseCompiler, CompilerError


class RecordingCompiler(BaseCompiler):
    """Returns a deterministic blob and remembers what it was asked to compile."""

    calls = []

    def compile(self, images):
        RecordingCompiler.calls.append([image.name for image in images])
        body = b"".join(len(image.content).to_bytes(4, "little") for image in images)
        return b"MIND" + len(images).to_bytes(4, "little") + body


class FailingCompiler(BaseCompiler):
    def compile(self, images):
        raise CompilerError("compiler page changed its markup")
