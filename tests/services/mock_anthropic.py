"""Mock Anthropic Client — scripted create_message responses for AIGateway tests.

Invariants:
    - MockAnthropicClient sequences responses (one per create_message call)
    - Every call's keyword arguments are recorded for assertions
    - Builder helpers produce realistic Anthropic response structures

Design Decisions:
    - Flat mock classes (no inheritance): simple, explicit, easy to debug
    - A scripted Exception instance is raised instead of returned
"""


class _Block:
    """Mock content block (text or tool_use)."""

    def __init__(self, **kwargs):
        for k, v in kwargs.items():
            setattr(self, k, v)


class _Usage:
    def __init__(self, input_tokens=100, output_tokens=50):
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens


class _Message:
    def __init__(self, content, stop_reason="end_turn"):
        self.content = content
        self.stop_reason = stop_reason
        self.usage = _Usage()


class MockAnthropicClient:
    """Replaces ResilientAnthropicClient. Sequences pre-configured responses."""

    def __init__(self, responses):
        self._responses = list(responses)
        self._idx = 0
        self.calls = []

    async def create_message(self, **kwargs):
        self.calls.append(kwargs)
        if self._idx >= len(self._responses):
            raise RuntimeError(
                f"MockAnthropicClient: no response at index {self._idx} "
                f"(configured {len(self._responses)})",
            )
        response = self._responses[self._idx]
        self._idx += 1
        if isinstance(response, Exception):
            raise response
        return response


class MockImageClient:
    """Replaces GeminiImageClient."""

    def __init__(self, result=("SU1BR0U=", "image/png")):
        self.result = result
        self.calls = []

    async def generate(self, prompt, base_image=None, context=None):
        self.calls.append((prompt, base_image))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


# -- Builder helpers -----------------------------------------------------------


def text_response(text):
    return _Message([_Block(type="text", text=text)])


def tool_response(name, tool_input):
    return _Message(
        [_Block(type="tool_use", id=f"toolu_{name}_test", name=name, input=tool_input)],
        stop_reason="tool_use",
    )
