import asyncio
from types import SimpleNamespace
import leadscore.ai_scoring as ai_scoring
from leadscore.ai_scoring import (
    FALLBACK_REASONING,
    SYSTEM_PROMPT,
    OpenAIChatGenerator,
    fallback_result,
    build_prompt,
    extract_score_from_text,
    get_ai_score,
)
from leadscore.models import GenerationOptions, LeadIn


class CannedGenerator:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def generate(self, prompt, options):
        self.calls.append((prompt, options))
        if self.error is not None:
            raise self.error
        return self.reply


LEAD = LeadIn(name="Jane Doe", email="jane@acme.com", company="Acme Inc", status="contacted")


def test_extract_score_from_text():
    assert extract_score_from_text("85 - Strong lead") == 85
    assert extract_score_from_text("Score: 72. Good fit") == 72
    assert extract_score_from_text("No digits here") == 50
    assert extract_score_from_text("250 - off the charts") == 100
    assert extract_score_from_text("0 - poor") == 1
    assert extract_score_from_text("1234") == 50
    assert extract_score_from_text(None) == 50


def test_build_prompt_embeds_fields():
    prompt = build_prompt(LEAD)
    assert "Name: Jane Doe" in prompt
    assert "Email: jane@acme.com" in prompt
    assert "Company: Acme Inc" in prompt
    assert "Status: contacted" in prompt
    assert '"85 - ' in prompt


def test_build_prompt_missing_fields():
    prompt = build_prompt({"name": "Jane Doe"})
    assert "Email: None" in prompt
    assert "Status: new" in prompt


def test_ai_score_parses_reply():
    gen = CannedGenerator(reply="85 - Strong lead")
    result = asyncio.run(get_ai_score(LEAD, gen))
    assert result.score == 85
    assert result.reasoning == "85 - Strong lead"


def test_ai_score_passes_options():
    gen = CannedGenerator(reply="60 - ok")
    asyncio.run(get_ai_score(LEAD, gen))
    prompt, options = gen.calls[0]
    assert "Jane Doe" in prompt
    assert options.system == SYSTEM_PROMPT
    assert options.max_tokens > 0
    custom = GenerationOptions(system="x", temperature=0.1, max_tokens=10)
    asyncio.run(get_ai_score(LEAD, gen, custom))
    assert gen.calls[1][1] == custom


def test_ai_score_unparseable_reply_keeps_text():
    gen = CannedGenerator(reply="Looks promising overall")
    result = asyncio.run(get_ai_score(LEAD, gen))
    assert result.score == 50
    assert result.reasoning == "Looks promising overall"


def test_ai_score_fallback_on_error():
    gen = CannedGenerator(error=ConnectionError("network down"))
    result = asyncio.run(get_ai_score(LEAD, gen))
    assert result.model_dump() == {"score": 50, "reasoning": "Error in AI evaluation - using default score"}
    assert result.reasoning == FALLBACK_REASONING


def test_ai_score_missing_content_uses_fallback():
    result = asyncio.run(get_ai_score(LEAD, CannedGenerator(reply=None)))
    assert result.score == 50
    assert result.reasoning == FALLBACK_REASONING


def test_ai_score_empty_reply_keeps_text():
    result = asyncio.run(get_ai_score(LEAD, CannedGenerator(reply="")))
    assert result.model_dump() == {"score": 50, "reasoning": ""}


class FakeCompletions:
    def __init__(self, content):
        self.content = content
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def test_openai_generator_request(monkeypatch):
    completions = FakeCompletions("72 - Solid corporate contact")
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    monkeypatch.setattr(ai_scoring, "_get_client", lambda: client)
    options = GenerationOptions(system=SYSTEM_PROMPT, temperature=0.7, max_tokens=60)
    result = asyncio.run(get_ai_score(LEAD, OpenAIChatGenerator(model="test-model"), options))
    assert result.model_dump() == {"score": 72, "reasoning": "72 - Solid corporate contact"}
    kwargs = completions.kwargs
    assert kwargs["model"] == "test-model"
    assert kwargs["temperature"] == 0.7
    assert kwargs["max_tokens"] == 60
    system, user = kwargs["messages"]
    assert system == {"role": "system", "content": SYSTEM_PROMPT}
    assert user["role"] == "user"
    assert user["content"] == build_prompt(LEAD)


def test_openai_generator_client_error(monkeypatch):
    def broken_client():
        raise RuntimeError("The api_key client option must be set")

    monkeypatch.setattr(ai_scoring, "_get_client", broken_client)
    result = asyncio.run(get_ai_score(LEAD, OpenAIChatGenerator()))
    assert result == fallback_result()
