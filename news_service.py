"""
Upstream news provider: asks an LLM API for today's AI headline.
"""
import logging
import re

import google.genai as genai
import requests
from google.genai import types

import config
from data_models import NewsData
from exceptions import ConfigurationError, UpstreamError
from rotation import DEFAULT_REGION

logger = logging.getLogger(__name__)

NO_NEWS_TEXT = 'No news available'


class NewsService:
    """Service class for the upstream LLM news providers"""

    def __init__(self, provider: str = config.NEWS_PROVIDER, perplexity_api_key: str = None,
                 gemini_api_key: str = None, timeout: float = config.REQUEST_TIMEOUT,
                 session: requests.Session = None):
        if provider not in ('perplexity', 'gemini'):
            raise ConfigurationError(f"Unknown news provider '{provider}'")
        self.provider = provider
        self.perplexity_api_key = perplexity_api_key
        self.gemini_api_key = gemini_api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls) -> 'NewsService':
        return cls(
            provider=config.NEWS_PROVIDER,
            perplexity_api_key=config.PERPLEXITY_API_KEY,
            gemini_api_key=config.GEMINI_API_KEY,
        )

    @staticmethod
    def clean_text(text: str) -> str:
        """Remove [n] citation markers and collapse runs of whitespace"""
        if not text:
            return NO_NEWS_TEXT
        cleaned = re.sub(r'\[\d+\]', '', text)
        cleaned = re.sub(r'\s{2,}', ' ', cleaned).strip()
        return cleaned or NO_NEWS_TEXT

    def build_prompts(self, region: str):
        """Return the (system, user) prompt pair for a region"""
        if region == DEFAULT_REGION:
            return config.GLOBAL_SYSTEM_PROMPT.strip(), config.GLOBAL_USER_PROMPT
        return (
            config.REGIONAL_SYSTEM_PROMPT.format(region=region).strip(),
            config.REGIONAL_USER_PROMPT.format(region=region),
        )

    def fetch_news(self, region: str = DEFAULT_REGION) -> NewsData:
        logger.info(f"Fetching fresh content from {self.provider} for region: {region}")
        system_prompt, user_prompt = self.build_prompts(region)

        if self.provider == 'gemini':
            text = self._call_gemini(system_prompt, user_prompt)
        else:
            text = self._call_perplexity(system_prompt, user_prompt)

        return NewsData(news_text=self.clean_text(text), audio_url=None)

    def _call_perplexity(self, system_prompt: str, user_prompt: str) -> str:
        if not self.perplexity_api_key:
            raise UpstreamError('PERPLEXITY_API_KEY not configured')

        try:
            response = self.session.post(
                config.PERPLEXITY_API_URL,
                headers={
                    'Authorization': f'Bearer {self.perplexity_api_key}',
                    'Content-Type': 'application/json',
                },
                json={
                    'model': config.PERPLEXITY_MODEL,
                    'messages': [
                        {'role': 'system', 'content': system_prompt},
                        {'role': 'user', 'content': user_prompt},
                    ],
                },
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise UpstreamError('Perplexity API timeout') from e
        except requests.exceptions.RequestException as e:
            raise UpstreamError(f'Perplexity API request failed: {e}') from e

        if not response.ok:
            raise UpstreamError(f'Perplexity API failed: {response.status_code} {response.reason}')

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError('Perplexity API returned invalid JSON') from e

        choices = data.get('choices') or [{}]
        return (choices[0].get('message') or {}).get('content') or ''

    def _call_gemini(self, system_prompt: str, user_prompt: str) -> str:
        if not self.gemini_api_key:
            raise UpstreamError('GEMINI_API_KEY not configured')

        try:
            client = genai.Client(api_key=self.gemini_api_key)
            grounding_tool = types.Tool(
                google_search=types.GoogleSearch()
            )
            generate_config = types.GenerateContentConfig(
                tools=[grounding_tool],
                system_instruction=system_prompt,
            )
            response = client.models.generate_content(
                model=config.GEMINI_MODEL,
                contents=user_prompt,
                config=generate_config,
            )
        except Exception as e:
            raise UpstreamError(f'Gemini API failed: {e}') from e

        return response.text or ''
