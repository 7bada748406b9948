"""Bingo option generation through an OpenAI-compatible chat completion API.

Works against Ollama out of the box; set ``LLM_API_URL``/``LLM_MODEL`` and
``LLM_API_KEY`` to point it at a hosted provider instead.
"""

import json
import re
from typing import List

import httpx
from flask import current_app

from bingo.errors import ServiceUnavailable

UNAVAILABLE_MESSAGE = 'AI generation is currently unavailable. Please try again or use placeholder options.'
MAX_OPTION_CHARS = 100

SYSTEM_PROMPT = """You are a creative bingo option generator. Generate exactly {count} unique, fun, and relevant bingo options based on the theme provided. Each option should be:
- Concise (under 50 characters)
- Specific and observable (something that can clearly happen or be said)
- Appropriate for a family game night
- Varied in likelihood (some common, some rare)

Return ONLY a JSON array of {count} strings, nothing else. Example format:
["Option 1", "Option 2", ...]"""

_LIST_PREFIX = re.compile(r'^[\d.\-*\s]+')
_SURROUNDING_QUOTES = re.compile(r'^["\']+|["\']+$')
_TRAILING_COMMAS = re.compile(r',+$')
_JSON_ARRAY = re.compile(r'\[[\s\S]*\]')
_HAS_LETTER = re.compile(r'[a-zA-Z]')


def _strings(items) -> List[str]:
    return [item.strip() for item in items if isinstance(item, str) and item.strip()]


def _parse_lines(content: str) -> List[str]:
    options = []
    for line in content.splitlines():
        line = _LIST_PREFIX.sub('', line).strip()
        line = _TRAILING_COMMAS.sub('', line).strip()
        line = _SURROUNDING_QUOTES.sub('', line).strip()
        if 0 < len(line) < MAX_OPTION_CHARS and _HAS_LETTER.search(line):
            options.append(line)
    return options


def parse_options(content: str) -> List[str]:
    """Recover a list of options from a model reply.

    Tries the reply as a JSON array, then the first bracketed array inside
    it, then falls back to one option per line. Duplicates are dropped.
    """
    options = None
    try:
        parsed = json.loads(content)
        if isinstance(parsed, list):
            options = _strings(parsed)
    except ValueError:
        match = _JSON_ARRAY.search(content)
        if match:
            try:
                parsed = json.loads(match.group(0))
                if isinstance(parsed, list):
                    options = _strings(parsed)
            except ValueError:
                current_app.logger.warning('[llm] failed to parse JSON array from response')
    if options is None:
        current_app.logger.warning('[llm] using line-based fallback parsing')
        options = _parse_lines(content)
    return list(dict.fromkeys(options))


def pad_options(options: List[str], count: int) -> List[str]:
    padded = list(options[:count])
    taken = set(padded)
    n = len(padded) + 1
    while len(padded) < count:
        candidate = f'Option {n}'
        if candidate not in taken:
            padded.append(candidate)
            taken.add(candidate)
        n += 1
    return padded


def _request_completion(theme: str, count: int):
    cfg = current_app.config
    headers = {'Content-Type': 'application/json'}
    if cfg.get('LLM_API_KEY'):
        headers['Authorization'] = f"Bearer {cfg['LLM_API_KEY']}"
    payload = {
        'model': cfg.get('LLM_MODEL'),
        'messages': [
            {'role': 'system', 'content': SYSTEM_PROMPT.format(count=count)},
            {'role': 'user', 'content': f'Generate {count} bingo options for a game themed: "{theme}"'},
        ],
        'temperature': 0.8,
        'max_tokens': 1000,
    }
    response = httpx.post(
        cfg.get('LLM_API_URL'),
        json=payload,
        headers=headers,
        timeout=float(cfg.get('LLM_TIMEOUT_SEC', 30)),
    )
    response.raise_for_status()
    body = response.json()
    try:
        return body['choices'][0]['message']['content']
    except (KeyError, IndexError, TypeError):
        return None


def generate_options(theme: str, count: int = 24) -> List[str]:
    """Ask the model for ``count`` options themed on ``theme``.

    Short or malformed replies are padded with placeholders; transport
    failures and timeouts raise ServiceUnavailable.
    """
    current_app.logger.info(f"[llm] generating options theme={theme!r} model={current_app.config.get('LLM_MODEL')}")
    try:
        content = _request_completion(theme, count)
    except httpx.TimeoutException as exc:
        current_app.logger.error(f"[llm] request timed out: {exc}")
        raise ServiceUnavailable(UNAVAILABLE_MESSAGE) from exc
    except (httpx.HTTPError, ValueError) as exc:
        current_app.logger.error(f"[llm] request failed: {exc}")
        raise ServiceUnavailable(UNAVAILABLE_MESSAGE) from exc

    if not isinstance(content, str) or not content.strip():
        current_app.logger.error('[llm] empty response from model')
        raise ServiceUnavailable(UNAVAILABLE_MESSAGE)

    options = parse_options(content)
    if len(options) < count:
        current_app.logger.warning(f"[llm] model returned {len(options)} options, expected {count}; padding with placeholders")
    options = pad_options(options, count)
    current_app.logger.info(f"[llm] generated {len(options)} options")
    return options
