"""Tests for short code generation."""

import base64

from link_shortener.shortcode import ShortCodeGenerator


class TestShortCodeGenerator:
    """Test short code generation."""
    
    def test_generate_is_four_characters(self):
        """Default codes are 4 URL-safe base64 characters."""
        generator = ShortCodeGenerator()
        
        for _ in range(200):
            code = generator.generate()
            assert len(code) == 4
            assert generator.is_valid_format(code)
    
    def test_generate_decodes_to_three_bytes(self):
        """A code is the unpadded encoding of exactly 3 random bytes."""
        code = ShortCodeGenerator().generate()
        
        assert "=" not in code
        assert len(base64.urlsafe_b64decode(code)) == 3
    
    def test_code_length_follows_byte_count(self):
        """Other byte counts round up to whole characters."""
        assert ShortCodeGenerator(num_bytes=3).code_length == 4
        assert ShortCodeGenerator(num_bytes=6).code_length == 8
        assert len(ShortCodeGenerator(num_bytes=4).generate()) == 6
    
    def test_codes_vary(self):
        """Random codes are not constant."""
        generator = ShortCodeGenerator()
        
        codes = {generator.generate() for _ in range(50)}
        assert len(codes) > 1
    
    def test_is_valid_format(self):
        """Test format validation."""
        assert ShortCodeGenerator.is_valid_format("aB3_")
        assert ShortCodeGenerator.is_valid_format("x-Y9")
        
        assert not ShortCodeGenerator.is_valid_format("")
        assert not ShortCodeGenerator.is_valid_format("ab c")
        assert not ShortCodeGenerator.is_valid_format("ab+/")
        assert not ShortCodeGenerator.is_valid_format("ab==")
