"""Stand-ins for image and document analysis tools.

The reports are canned; only the requested analysis or file type is
echoed back.
"""

from typing import Any

from ..base import BaseTool, optional_str, require_str


class AnalyzeImageTool(BaseTool):

    @property
    def name(self) -> str:
        return "analyze_image"

    @property
    def description(self) -> str:
        return "Analyze images to detect objects, text, faces, and other features"

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "image_data": {"type": "string", "description": "Base64 encoded image data"},
                "analysis_type": {
                    "type": "string",
                    "description": "Type of analysis: 'general', 'text', 'faces', 'objects'",
                    "default": "general"
                }
            },
            "required": ["image_data"]
        }

    async def run(self, arguments: dict[str, Any]) -> str:
        require_str(arguments, "image_data")
        analysis_type = optional_str(arguments, "analysis_type", "general")
        return (
            f"Image Analysis ({analysis_type}):\n\n"
            "Objects Detected: person, car, building, tree\n"
            "Dominant Colors: blue, green, gray, white\n"
            "Text Found: Sample text found in image\n"
            "Faces Detected: 2\n"
            "Confidence: 0.95\n"
            "Image Quality: high\n"
            "Dimensions: 1920x1080\n"
        )


class AnalyzeDocumentTool(BaseTool):

    @property
    def name(self) -> str:
        return "analyze_document"

    @property
    def description(self) -> str:
        return "Analyze documents (PDF, Word, etc.) to extract insights and metadata"

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "document_data": {"type": "string", "description": "Base64 encoded document data"},
                "document_type": {
                    "type": "string",
                    "description": "Document type: 'pdf', 'docx', 'txt', 'rtf'",
                    "default": "pdf"
                }
            },
            "required": ["document_data"]
        }

    async def run(self, arguments: dict[str, Any]) -> str:
        require_str(arguments, "document_data")
        document_type = optional_str(arguments, "document_type", "pdf")
        return (
            "Document Analysis:\n"
            f"- Type: {document_type}\n"
            "- Pages: 15\n"
            "- Words: 2847\n"
            "- Language: English\n"
            "- Topics: Technology, AI, Machine Learning\n"
            "- Key Entities: OpenAI, GPT, Neural Networks\n"
            "- Sentiment: Neutral\n"
            "- Readability: Professional\n"
            "- Contains Tables: true\n"
            "- Contains Images: true"
        )


class ExtractTextTool(BaseTool):

    @property
    def name(self) -> str:
        return "extract_text"

    @property
    def description(self) -> str:
        return "Extract text content from various file formats"

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "file_data": {"type": "string", "description": "Base64 encoded file data"},
                "file_type": {
                    "type": "string",
                    "description": "File type: 'pdf', 'docx', 'txt', 'image'",
                    "default": "pdf"
                }
            },
            "required": ["file_data"]
        }

    async def run(self, arguments: dict[str, Any]) -> str:
        require_str(arguments, "file_data")
        file_type = optional_str(arguments, "file_type", "pdf")
        return (
            f"Extracted text from {file_type} file:\n\n"
            "This is sample extracted text content. In a real implementation, this would:\n"
            "- Parse PDF files\n"
            "- Extract text from images using OCR\n"
            "- Parse Word documents\n"
            "- Handle various file formats\n\n"
            "The extracted content would preserve formatting and structure where possible.\n\n"
            f"File type: {file_type}\n"
            "Extraction confidence: 95%\n"
            "Character count: 1,247\n"
            "Word count: 203"
        )
