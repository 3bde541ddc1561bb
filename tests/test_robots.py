"""
Unit tests for core/evs/robots.py

Tests cover:
- AI user-agent block detection (GPTBot / ChatGPT)
- Blanket wildcard block fallback
- Fail-open behaviour on empty / malformed input
- The documented grouped user-agent limitation
"""
import pytest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.evs.robots import analyze


class TestAIAgentBlock:
    """Disallow directives inside a GPTBot / ChatGPT user-agent block"""

    def test_gptbot_disallow_root(self):
        assert analyze("User-agent: GPTBot\nDisallow: /\n").blocks_ai_agents is True

    def test_non_empty_path_under_ai_block_is_enough(self):
        """A later allow-all wildcard block does not undo the AI block"""
        text = "User-agent: GPTBot\nDisallow: /public\nUser-agent: *\nDisallow:\n"
        assert analyze(text).blocks_ai_agents is True

    def test_chatgpt_user_agent(self):
        text = "User-agent: ChatGPT-User\nDisallow: /private\n"
        assert analyze(text).blocks_ai_agents is True

    def test_case_insensitive(self):
        assert analyze("USER-AGENT: gptbot\nDISALLOW: /\n").blocks_ai_agents is True

    def test_empty_disallow_under_ai_block(self):
        """Empty disallow means allow everything"""
        assert analyze("User-agent: GPTBot\nDisallow:\n").blocks_ai_agents is False

    def test_other_user_agent_exits_ai_block(self):
        text = "User-agent: GPTBot\nUser-agent: Bingbot\nDisallow: /\n"
        assert analyze(text).blocks_ai_agents is False

    def test_disallow_in_unrelated_block(self):
        text = "User-agent: Googlebot\nDisallow: /tmp\n"
        assert analyze(text).blocks_ai_agents is False

    def test_windows_line_endings(self):
        assert analyze("User-agent: GPTBot\r\nDisallow: /\r\n").blocks_ai_agents is True


class TestGroupedUserAgentLimitation:
    """
    Grouped user-agent lines are not merged: only the last user-agent line
    before the directives decides the block.
    """

    def test_ai_agent_first_in_group_not_honored(self):
        text = "User-agent: GPTBot\nUser-agent: CCBot\nDisallow: /\n"
        assert analyze(text).blocks_ai_agents is False

    def test_ai_agent_last_in_group_honored(self):
        text = "User-agent: CCBot\nUser-agent: GPTBot\nDisallow: /\n"
        assert analyze(text).blocks_ai_agents is True


class TestBlanketBlock:
    """Wildcard block disallowing the root with no allow directive anywhere"""

    def test_wildcard_disallow_root(self):
        assert analyze("User-agent: *\nDisallow: /\n").blocks_ai_agents is True

    def test_wildcard_disallow_root_with_allow_directive(self):
        text = "User-agent: *\nDisallow: /\nAllow: /public\n"
        assert analyze(text).blocks_ai_agents is False

    def test_allow_elsewhere_in_file_disables_fallback(self):
        text = "User-agent: GPTBot\nAllow: /\n\nUser-agent: *\nDisallow: /\n"
        assert analyze(text).blocks_ai_agents is False

    def test_wildcard_disallow_subpath_only(self):
        assert analyze("User-agent: *\nDisallow: /admin\n").blocks_ai_agents is False

    def test_root_disallow_under_named_agent_is_not_blanket(self):
        assert analyze("User-agent: Googlebot\nDisallow: /\n").blocks_ai_agents is False


class TestFailOpen:
    """Unreadable input never reports a block"""

    @pytest.mark.parametrize("text", ["", None, "   \n\n", "<html>404 not found</html>", "\x00\x01garbage"])
    def test_unparseable_input(self, text):
        assert analyze(text).blocks_ai_agents is False

    def test_idempotent(self):
        text = "User-agent: GPTBot\nDisallow: /\n"
        assert analyze(text) == analyze(text)
