from typing import Any

from ..base import BaseTool, optional_str, require_str

_TEMPLATES = {
    "javascript": """// {description}
function generatedFunction() {{
    // Implementation for: {description}
    console.log('Generated function executed');
    return true;
}}

// Usage example
generatedFunction();""",
    "python": """# {description}
def generated_function():
    \"\"\"Implementation for: {description}\"\"\"
    print('Generated function executed')
    return True

# Usage example
if __name__ == "__main__":
    generated_function()""",
    "go": """// {description}
package main

import "fmt"

// GeneratedFunction implements: {description}
func GeneratedFunction() bool {{
    fmt.Println("Generated function executed")
    return true
}}

func main() {{
    GeneratedFunction()
}}""",
}

_LANGUAGE_ALIASES = {"js": "javascript", "py": "python", "golang": "go"}


class TranslateTool(BaseTool):
    """Stand-in translator that tags the text with the target language."""

    @property
    def name(self) -> str:
        return "translate_text"

    @property
    def description(self) -> str:
        return "Translate text between different languages"

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "text": {"type": "string", "description": "Text to translate"},
                "target_language": {
                    "type": "string",
                    "description": "Target language code (e.g., 'en', 'es', 'fr', 'de', 'ja', 'zh')"
                },
                "source_language": {
                    "type": "string",
                    "description": "Source language code (auto-detect if not specified)",
                    "default": "auto"
                }
            },
            "required": ["text", "target_language"]
        }

    async def run(self, arguments: dict[str, Any]) -> str:
        text = require_str(arguments, "text")
        target = require_str(arguments, "target_language")
        source = optional_str(arguments, "source_language", "auto")
        return (
            "Translation Result:\n"
            f"Source Language: {source}\n"
            f"Target Language: {target}\n"
            f"Original Text: {text}\n"
            f"Translated Text: [Translated to {target}] {text}\n"
            "Confidence: 0.98"
        )


class GenerateCodeTool(BaseTool):
    """Template-based code snippet generator."""

    @property
    def name(self) -> str:
        return "generate_code"

    @property
    def description(self) -> str:
        return "Generate code snippets in various programming languages"

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "description": {"type": "string", "description": "Description of what the code should do"},
                "language": {
                    "type": "string",
                    "description": "Programming language: 'javascript', 'python', 'go', 'java', 'cpp', 'rust'",
                    "default": "javascript"
                }
            },
            "required": ["description"]
        }

    async def run(self, arguments: dict[str, Any]) -> str:
        description = require_str(arguments, "description")
        language = optional_str(arguments, "language", "javascript")

        key = language.lower()
        template = _TEMPLATES.get(_LANGUAGE_ALIASES.get(key, key))
        if template is not None:
            code = template.format(description=description)
        else:
            code = (
                f"// {description}\n"
                f"// Generated code for: {description}\n"
                f"// Language: {language}\n\n"
                "// Implementation would go here"
            )
        return f"Generated {language} code:\n\n```{language}\n{code}\n```"
