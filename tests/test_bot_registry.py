"""Tests for the bot registry: type table and live bot uniqueness."""

import random

from conftest import FakeBot, FakeGreetingBot, FakeOwnConnectionBot

from tsbots.core.bot_registry import BotRegistry


class TestBotInstances:
    def test_add_twice_is_rejected(self):
        registry = BotRegistry()
        bot = FakeBot(bot_id=1)

        assert registry.add(bot) is True
        assert registry.add(bot) is False
        assert len(registry) == 1

    def test_same_identity_different_object_is_rejected(self):
        registry = BotRegistry()
        registry.add(FakeBot(bot_id=3))

        assert registry.add(FakeBot(bot_id=3)) is False
        assert len(registry) == 1

    def test_same_id_different_type_is_allowed(self):
        registry = BotRegistry()

        assert registry.add(FakeBot(bot_id=3))
        assert registry.add(FakeGreetingBot(bot_id=3))
        assert len(registry) == 2

    def test_remove_unknown_bot(self):
        registry = BotRegistry()
        assert registry.remove(FakeBot(bot_id=1)) is False

    def test_remove_by_identity_not_reference(self):
        registry = BotRegistry()
        original = FakeBot(bot_id=9)
        registry.add(original)

        assert registry.remove(FakeBot(bot_id=9)) is True
        assert len(registry) == 0

    def test_find(self):
        registry = BotRegistry()
        bot = FakeBot(bot_id=42)
        registry.add(bot)

        assert registry.find("FakeBot", 42) is bot
        assert registry.find("FakeBot", 43) is None
        assert registry.find("GreetingBot", 42) is None

    def test_all_keeps_insertion_order(self):
        registry = BotRegistry()
        bots = [FakeBot(bot_id=i) for i in (5, 1, 3)]
        for bot in bots:
            registry.add(bot)

        assert registry.all() == bots

    def test_uniqueness_under_random_operations(self):
        rng = random.Random(1234)
        registry = BotRegistry()
        kinds = [FakeBot, FakeGreetingBot]

        for _ in range(500):
            bot = rng.choice(kinds)(bot_id=rng.randint(0, 5))
            if rng.random() < 0.6:
                registry.add(bot)
            else:
                registry.remove(bot)
            identities = [(b.bot_type, b.id) for b in registry.all()]
            assert len(identities) == len(set(identities))

    def test_clear(self):
        registry = BotRegistry()
        registry.add(FakeBot(bot_id=1))
        registry.clear()
        assert registry.all() == []


class TestBotTypes:
    def test_register_type_twice(self):
        registry = BotRegistry()

        assert registry.register_type(FakeBot) is True
        assert registry.register_type(FakeBot) is False
        assert registry.types() == [FakeBot]

    def test_find_type(self):
        registry = BotRegistry()
        registry.register_type(FakeGreetingBot)

        assert registry.find_type("GreetingBot") is FakeGreetingBot
        assert registry.find_type("ChatBot") is None

    def test_find_type_is_a_loose_match(self):
        registry = BotRegistry()
        registry.register_type(FakeOwnConnectionBot)

        # any part of the qualified class path matches
        assert registry.find_type("OwnConnection") is FakeOwnConnectionBot
