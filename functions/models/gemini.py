# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

import io
import time
import logging
import wave
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from models import api_config
from models import prompts
from geoguide.schemas import StopDetails
from typing import List, Optional, Type, TypeVar

logger = logging.getLogger(__name__)

API_KEY_LOGGING_MESSAGE = "Ran with user-specified API key"
QUERY_RESPONSE_MAX_OUTPUT_TOKENS = 1000

# Gemini TTS returns 16-bit mono PCM at 24kHz.
TTS_SAMPLE_RATE = 24000
TTS_SAMPLE_WIDTH = 2
TTS_CHANNELS = 1

T = TypeVar("T")


class GeminiInvalidResponseException(Exception):
    pass


# Raised by the client for a missing key (ValueError) or a failed API call.
CLIENT_ERRORS = (ValueError, genai_errors.APIError)


def _client(api_key: str | None) -> genai.Client:
    if not api_key:
        api_key = api_config.DEFAULT_API_KEY
    else:
        logger.info(API_KEY_LOGGING_MESSAGE)
    return genai.Client(api_key=api_key)


def call_predict(
    query: str,
    model=api_config.DEFAULT_MODEL,
    api_key: str | None = None,
) -> str:
    try:
        response = _client(api_key).models.generate_content(
            model=model,
            contents=query,
            config=types.GenerateContentConfig(
                temperature=0, max_output_tokens=QUERY_RESPONSE_MAX_OUTPUT_TOKENS
            ),
        )
    except CLIENT_ERRORS as e:
        raise GeminiInvalidResponseException(str(e)) from e
    if not response.text:
        raise GeminiInvalidResponseException()
    return response.text


def call_predict_with_schema(
    query: str,
    response_schema: Type[T],
    model=api_config.DEFAULT_MODEL,
    api_key: str | None = None,
) -> T | List[T] | None:
    """Calls Gemini with a response schema for structured output."""
    start_time = time.time()
    truncated_query = (query[:200] + "...") if len(query) > 200 else query
    logger.info("Calling Gemini with schema, prompt: '%s'", truncated_query)
    try:
        response = _client(api_key).models.generate_content(
            model=model,
            contents=query,
            config={
                "response_mime_type": "application/json",
                "response_schema": response_schema,
                "temperature": 0,
            },
        )
        logger.info("Gemini with schema call took: %.2fs", time.time() - start_time)
        if not response.parsed:
            raise GeminiInvalidResponseException()
        return response.parsed
    except Exception as e:
        logger.error("An error occurred during predict with schema API call: %s", e)
        return None


def generate_stop_description(place_name: str, api_key: str | None = None) -> str:
    """Free-text guide description for a stop."""
    return call_predict(
        prompts.make_stop_description_prompt(place_name), api_key=api_key
    )


def generate_stop_details(
    place_name: str, api_key: str | None = None
) -> Optional[StopDetails]:
    """
    Asks Gemini for a short description and coordinates of a named place.

    Returns:
        StopDetails, or None when the model gave no usable answer.
    """
    result = call_predict_with_schema(
        prompts.make_stop_details_prompt(place_name), StopDetails, api_key=api_key
    )
    if isinstance(result, list):
        result = result[0] if result else None
    return result


def synthesize_speech(
    text: str,
    voice: str = api_config.DEFAULT_TTS_VOICE,
    model=api_config.DEFAULT_TTS_MODEL,
    api_key: str | None = None,
) -> bytes:
    """
    Reads the text aloud with a prebuilt voice.

    Returns:
        bytes: Raw PCM audio (see TTS_SAMPLE_RATE); wrap with pcm_to_wav
        before serving to a browser.
    """
    config = types.GenerateContentConfig(
        response_modalities=["AUDIO"],
        speech_config=types.SpeechConfig(
            voice_config=types.VoiceConfig(
                prebuilt_voice_config=types.PrebuiltVoiceConfig(
                    voice_name=voice,
                )
            )
        ),
    )
    try:
        response = _client(api_key).models.generate_content(
            model=model, contents=text, config=config
        )
    except CLIENT_ERRORS as e:
        raise GeminiInvalidResponseException(str(e)) from e
    try:
        audio = response.candidates[0].content.parts[0].inline_data.data
    except (AttributeError, IndexError, TypeError) as e:
        raise GeminiInvalidResponseException("No audio in response") from e
    if not audio:
        raise GeminiInvalidResponseException("Empty audio in response")
    return audio


def pcm_to_wav(pcm: bytes, sample_rate: int = TTS_SAMPLE_RATE) -> bytes:
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(TTS_CHANNELS)
        wav_file.setsampwidth(TTS_SAMPLE_WIDTH)
        wav_file.setframerate(sample_rate)
        wav_file.writeframes(pcm)
    return buffer.getvalue()
