"""
Summarization request execution.

ResilientRequestExecutor sends one prompt to an OpenAI-compatible
chat-completions endpoint under a CancelToken and turns every non-success
outcome into a typed error. It never retries on its own; retry policy belongs
to the caller.
"""

import logging
from typing import Optional

import requests

from .cancellation import CancelToken
from .errors import RefusalError, RequestTimeoutError, UpstreamError

logger = logging.getLogger(__name__)

ACTION = 'OpenAI request'
MAX_ERROR_BODY = 2000


class ResilientRequestExecutor:

    def __init__(self, api_key: str, model: str, base_url: str = 'https://api.openai.com/v1',
                 session: requests.Session = None):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return f'{self.base_url}/chat/completions'

    def build_payload(self, prompt: str, max_output_tokens: Optional[int] = None) -> dict:
        payload = {
            'model': self.model,
            'messages': [{'role': 'user', 'content': prompt}],
        }
        if max_output_tokens:
            payload['max_completion_tokens'] = max_output_tokens
        return payload

    def complete(self, prompt: str, timeout_ms: int, max_output_tokens: Optional[int] = None,
                 token: CancelToken = None) -> str:
        """
        Send the prompt and return the completion text.

        Raises:
            RequestTimeoutError: the token expired before or during the request
            UpstreamError: non-2xx status, transport failure or empty completion
            RefusalError: the model declined, with its refusal text
        """
        token = token or CancelToken(timeout_ms)
        token.raise_if_cancelled(ACTION)

        logger.info('Requesting completion from %s (model=%s, %d prompt chars)', self.endpoint, self.model, len(prompt))
        try:
            response = self.session.post(
                self.endpoint,
                headers={
                    'Authorization': f'Bearer {self.api_key}',
                    'Content-Type': 'application/json',
                },
                json=self.build_payload(prompt, max_output_tokens),
                timeout=token.remaining(),
            )
        except requests.exceptions.Timeout as e:
            token.cancel()
            raise RequestTimeoutError(ACTION, token.timeout_ms) from e
        except requests.exceptions.RequestException as e:
            if token.cancelled:
                raise RequestTimeoutError(ACTION, token.timeout_ms) from e
            raise UpstreamError(f'{ACTION} failed: {str(e)}') from e

        # A response that arrives after the deadline is discarded
        token.raise_if_cancelled(ACTION)

        if not 200 <= response.status_code < 300:
            body = response.text[:MAX_ERROR_BODY]
            raise UpstreamError(
                f'{ACTION} failed ({response.status_code}): {body}',
                status=response.status_code,
                body=body,
            )

        return self.parse_completion(response)

    def parse_completion(self, response: requests.Response) -> str:
        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(f'{ACTION} returned invalid JSON', status=response.status_code) from e

        choices = data.get('choices') if isinstance(data, dict) else None
        message = (choices[0] or {}).get('message') if choices else None
        if not isinstance(message, dict):
            raise UpstreamError(f'{ACTION} returned no choices', status=response.status_code)

        refusal = message.get('refusal')
        if isinstance(refusal, str) and refusal.strip():
            raise RefusalError(refusal)

        content = message.get('content')
        if isinstance(content, list):
            content = ''.join(part.get('text', '') for part in content if isinstance(part, dict))
        if not isinstance(content, str) or not content.strip():
            raise UpstreamError(f'{ACTION} returned an empty completion', status=response.status_code)

        return content.strip()
