# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
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

"""Language feature provider registry.

Keeps the providers registered per (feature, language) and dispatches
editor requests to them. Each registry is an ordinary object: create one
per editor instance instead of sharing module-level state.
"""

import logging
from enum import Enum
from typing import Any, Dict, List

from codeshell.editor.disposable import Disposable

logger = logging.getLogger(__name__)


class LanguageFeature(str, Enum):
    """Features a provider can be registered for, with the provider method used."""

    COMPLETION = "provide_completion_items"
    HOVER = "provide_hover"
    SIGNATURE_HELP = "provide_signature_help"
    DEFINITION = "provide_definition"
    REFERENCES = "provide_references"
    DOCUMENT_SYMBOL = "provide_document_symbols"
    DOCUMENT_FORMATTING = "provide_document_formatting_edits"
    RENAME = "provide_rename_edits"


class LanguageFeatureRegistry:
    """Registry for language feature providers.

    Supports:
    - Registration per feature and language id, returning a disposable handle
    - Lookup in registration order (latest first)
    - Dispatch to every provider with per-provider failure isolation
    """

    def __init__(self) -> None:
        self._providers: Dict[LanguageFeature, Dict[str, List[Any]]] = {
            feature: {} for feature in LanguageFeature
        }

    def register(self, feature: LanguageFeature, language_id: str, provider: Any) -> Disposable:
        """Register a provider.

        Args:
            feature: The language feature
            language_id: Language the provider answers for
            provider: Object implementing the feature's provider method

        Returns:
            Handle that unregisters the provider when disposed
        """
        if not callable(getattr(provider, feature.value, None)):
            raise TypeError(f"{provider!r} does not implement {feature.value}()")

        providers = self._providers[feature].setdefault(language_id, [])
        providers.append(provider)
        logger.debug(f"Registered {feature.name.lower()} provider for {language_id}")

        def _unregister() -> None:
            if provider in providers:
                providers.remove(provider)
                logger.debug(f"Unregistered {feature.name.lower()} provider for {language_id}")

        return Disposable(_unregister)

    def register_completion_item_provider(self, language_id: str, provider: Any) -> Disposable:
        return self.register(LanguageFeature.COMPLETION, language_id, provider)

    def register_hover_provider(self, language_id: str, provider: Any) -> Disposable:
        return self.register(LanguageFeature.HOVER, language_id, provider)

    def register_signature_help_provider(self, language_id: str, provider: Any) -> Disposable:
        return self.register(LanguageFeature.SIGNATURE_HELP, language_id, provider)

    def register_definition_provider(self, language_id: str, provider: Any) -> Disposable:
        return self.register(LanguageFeature.DEFINITION, language_id, provider)

    def register_reference_provider(self, language_id: str, provider: Any) -> Disposable:
        return self.register(LanguageFeature.REFERENCES, language_id, provider)

    def register_document_symbol_provider(self, language_id: str, provider: Any) -> Disposable:
        return self.register(LanguageFeature.DOCUMENT_SYMBOL, language_id, provider)

    def register_document_formatting_edit_provider(
        self, language_id: str, provider: Any
    ) -> Disposable:
        return self.register(LanguageFeature.DOCUMENT_FORMATTING, language_id, provider)

    def register_rename_provider(self, language_id: str, provider: Any) -> Disposable:
        return self.register(LanguageFeature.RENAME, language_id, provider)

    def get_providers(self, feature: LanguageFeature, language_id: str) -> List[Any]:
        """Providers for a feature, most recently registered first."""
        return list(reversed(self._providers[feature].get(language_id, [])))

    def count(self, language_id: str) -> int:
        """Total live registrations for a language across all features."""
        return sum(len(by_lang.get(language_id, [])) for by_lang in self._providers.values())

    async def invoke(self, feature: LanguageFeature, language_id: str, *args: Any) -> List[Any]:
        """Ask every provider for a result.

        Providers that fail or answer None are skipped.

        Returns:
            Non-empty results, in provider order
        """
        results: List[Any] = []
        for provider in self.get_providers(feature, language_id):
            try:
                result = await getattr(provider, feature.value)(*args)
            except Exception as e:
                logger.warning(f"Provider {provider!r} failed {feature.value}: {e}")
                continue
            if result is not None:
                results.append(result)
        return results
