"""
AI Module - Interpretation layer of the delegation core.

- providers/: generative backends (Gemini, OpenAI) behind one interface
- prompts/: prompt templates for classification and token suggestion
- intent/: intent classification with confidence threshold
- extraction/: clause segmentation, temporal tokens, multi-event extraction
"""
