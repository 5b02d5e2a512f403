"""
Unit Tests for uploaded study files
"""

import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "learnverse_tutor", "src"))

from learnverse_tutor.errors import StudyFileError
from learnverse_tutor.study_files import MAX_FILE_SIZE, StudyFile, guess_type, is_accepted_type


class TestAcceptedTypes:

    @pytest.mark.parametrize("name,mime_type", [
        ("notes.txt", "text/plain"),
        ("paper.pdf", "application/pdf"),
        ("essay.doc", "application/msword"),
        ("essay.docx", "application/vnd.openxmlformats-officedocument.wordprocessingml.document"),
        ("notes.md", "text/markdown"),
        ("diagram.png", "image/png"),
        ("photo.webp", "image/webp"),
        ("scan.JPG", None),
    ])
    def test_accepted(self, name, mime_type):
        assert is_accepted_type(name, mime_type)

    @pytest.mark.parametrize("name,mime_type", [
        ("setup.exe", "application/x-msdownload"),
        ("archive.zip", None),
        ("song.mp3", "audio/mpeg"),
    ])
    def test_rejected(self, name, mime_type):
        assert not is_accepted_type(name, mime_type)

    def test_guess_type(self):
        assert guess_type("notes.md") == "text/markdown"
        assert guess_type("diagram.png") == "image/png"
        assert guess_type("archive.zip") == "application/octet-stream"


class TestStudyFile:

    def test_from_dict_infers_type(self):
        study_file = StudyFile.from_dict({"name": "cells.md", "content": "Cells"})
        assert study_file.type == "text/markdown"
        assert study_file.readable_content() == "Cells"
        assert study_file.title == "cells"

    def test_binary_placeholder(self):
        study_file = StudyFile.from_dict({"name": "paper.pdf", "type": "application/pdf", "size": 2048})
        assert study_file.readable_content() == "Content from paper.pdf (application/pdf)"

    def test_unsupported_type_rejected(self):
        with pytest.raises(StudyFileError, match="not a supported file type"):
            StudyFile.from_dict({"name": "setup.exe", "content": "MZ"})

    def test_declared_size_over_limit(self):
        with pytest.raises(StudyFileError, match="10MB"):
            StudyFile.from_dict({"name": "paper.pdf", "type": "application/pdf", "size": MAX_FILE_SIZE + 1})

    def test_content_size_over_limit(self):
        with pytest.raises(StudyFileError, match="10MB"):
            StudyFile.from_dict({"name": "notes.txt", "content": "a" * (MAX_FILE_SIZE + 1)})

    def test_size_at_limit_accepted(self):
        StudyFile.from_dict({"name": "paper.pdf", "type": "application/pdf", "size": MAX_FILE_SIZE})
