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

STOP_DESCRIPTION_MAX_WORDS = 50


def make_stop_description_prompt(place_name: str) -> str:
    return (
        f"Provide a short, engaging description (under {STOP_DESCRIPTION_MAX_WORDS} "
        f'words) for a travel guide stop named "{place_name}".'
    )


def make_stop_details_prompt(place_name: str) -> str:
    return (
        f'Identify the famous place "{place_name}". Return a JSON object with '
        f"properties: 'description' (string, max {STOP_DESCRIPTION_MAX_WORDS} words), "
        "'lat' (number), 'lng' (number). If the location is unknown, use Paris "
        "coordinates."
    )
