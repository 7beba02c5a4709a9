#!/usr/bin/env python3
"""
GenieJack - Command Line Interface

Play, auto-play and verify GenieJack runs from the terminal.

Usage:
    python cli.py play --seed ABC123
    python cli.py auto --seed ABC123 --save runs/abc.json
    python cli.py replay runs/abc.json
    python cli.py rng --seed ABC123 --count 20
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from packages.geniejack.config import load_settings
from packages.geniejack.game import (
    BuyItem, Continue, DoubleDown, EnterWish, GameAction, GameEngine, GamePhase,
    Hit, Peek, RemoveCard, SkipShop, Stand, Surrender, UseConsumable,
)
from packages.geniejack.llm import build_wish_context, generate_blessing
from packages.geniejack.replay import load_replay, save_replay, verify_replay
from packages.geniejack.state.rng import Random, XorShift128, seed_to_long


# =============================================================================
# OUTPUT FORMATTING
# =============================================================================

SUIT_SYMBOLS = {"hearts": "♥", "diamonds": "♦", "clubs": "♣", "spades": "♠"}


def format_card(card: Optional[Dict[str, str]]) -> str:
    if card is None:
        return "??"
    return f"{card['rank']}{SUIT_SYMBOLS.get(card['suit'], '?')}"


def format_view(view: Dict[str, Any]) -> str:
    """Render a GameEngine view as a few lines of text."""
    player = view["player"]
    lines = [
        f"Stage {view['stage']}/{view['total_stages']}  Battle {view['battle']}  "
        f"Hand {view['hand_number']}  [{view['phase']}]",
        f"You: {player['hp']}/{player['max_hp']} HP, {player['gold']} gold",
    ]
    enemy = view.get("enemy")
    if enemy:
        boss = " (BOSS)" if enemy["is_boss"] else ""
        lines.append(f"Enemy: {enemy['name']}{boss} {enemy['hp']}/{enemy['max_hp']} HP")

    hand = view.get("hand")
    if hand:
        player_cards = " ".join(format_card(c) for c in hand["player_cards"])
        dealer_cards = " ".join(format_card(c) for c in hand["dealer_cards"])
        dealer_value = hand["dealer_score"]["value"] if hand["dealer_score"] else "?"
        lines.append(f"  Your hand:   {player_cards}  ({hand['player_score']['value']})")
        lines.append(f"  Dealer hand: {dealer_cards}  ({dealer_value})")

    if view.get("shop"):
        for item in view["shop"]["items"]:
            status = "sold" if item["sold"] else f"{item['price']}g"
            lines.append(f"  [{item['index']}] {item['item']['name']} ({status}) "
                         f"- {item['item']['description']}")
    if view.get("genie"):
        genie = view["genie"]
        lines.append(f"  The Genie offers a wish. Curse: {genie['curse_name']} "
                     f"({genie['curse_description']})")

    for entry in view["log"]:
        lines.append(f"  > {entry}")
    return "\n".join(lines)


def format_actions(actions: List[GameAction]) -> str:
    return ", ".join(type(a).__name__ + (f"({a.item_index})" if hasattr(a, "item_index") else "")
                     for a in actions)


# =============================================================================
# COMMANDS
# =============================================================================

PLAY_COMMANDS = {
    "h": Hit, "hit": Hit,
    "s": Stand, "stand": Stand,
    "d": DoubleDown, "double": DoubleDown,
    "p": Peek, "peek": Peek,
    "surrender": Surrender,
    "c": Continue, "continue": Continue, "": Continue,
    "skip": SkipShop,
}


def parse_play_command(text: str) -> Optional[GameAction]:
    parts = text.strip().lower().split()
    cmd = parts[0] if parts else ""
    if cmd in PLAY_COMMANDS:
        return PLAY_COMMANDS[cmd]()
    try:
        if cmd in ("buy", "b") and len(parts) > 1:
            return BuyItem(int(parts[1]))
        if cmd in ("use", "u") and len(parts) > 1:
            return UseConsumable(int(parts[1]))
        if cmd in ("remove", "r") and len(parts) > 1:
            return RemoveCard(int(parts[1]))
    except ValueError:
        return None
    return None


def ask_wish(engine: GameEngine, use_llm: bool) -> GameAction:
    text = input("Make a wish: ").strip()
    if not use_llm:
        return EnterWish(text)
    blessing = generate_blessing(text, build_wish_context(engine.get_view()))
    print(f"The Genie grants: {blessing.name} - {blessing.description}")
    return EnterWish(text, blessing.to_dict())


def cmd_play(args) -> int:
    """Interactive play in the terminal."""
    engine = GameEngine(seed=args.seed)
    print("=" * 60)
    print(f"GenieJack - seed {engine.seed}")
    print("=" * 60)
    print("Commands: hit/h, stand/s, double/d, peek/p, surrender, remove <i>,")
    print("          use <i>, buy <i>, skip, continue/c (or Enter), quit/q")

    while not engine.is_over:
        print()
        print(format_view(engine.get_view()))
        print(f"Available: {format_actions(engine.get_available_actions())}")

        if engine.phase == GamePhase.GENIE:
            try:
                action = ask_wish(engine, not args.no_llm)
            except (EOFError, KeyboardInterrupt):
                print("\nExiting...")
                break
        else:
            try:
                text = input("> ")
            except (EOFError, KeyboardInterrupt):
                print("\nExiting...")
                break
            if text.strip().lower() in ("q", "quit", "exit"):
                break
            action = parse_play_command(text)
            if action is None:
                print("Unknown command")
                continue

        result = engine.perform_action(action)
        if not result.success:
            print(f"! {result.message}")

    print()
    print(format_view(engine.get_view()))
    if args.save:
        save_replay(engine.get_replay(), args.save)
        print(f"Replay saved to {args.save}")
    return 0


def cmd_auto(args) -> int:
    """Auto-play a run: stand on 17+, skip shops, empty wishes."""
    engine = GameEngine(seed=args.seed)
    for _ in range(args.max_actions):
        if engine.is_over:
            break
        if engine.phase == GamePhase.PLAYER_TURN:
            value = engine.get_view()["hand"]["player_score"]["value"]
            action = Stand() if value >= 17 else Hit()
        elif engine.phase == GamePhase.SHOP:
            action = SkipShop()
        elif engine.phase == GamePhase.GENIE:
            action = EnterWish("")
        else:
            action = Continue()
        engine.perform_action(action)

    view = engine.get_view()
    if args.json:
        print(json.dumps(view, indent=2, sort_keys=True))
    else:
        print(format_view(view))
        print(f"Actions taken: {len(engine.action_log)}")
    if args.save:
        save_replay(engine.get_replay(), args.save)
    return 0 if engine.phase == GamePhase.VICTORY else 2


def cmd_replay(args) -> int:
    """Load a replay file, verify it and show the final state."""
    replay = load_replay(args.file)
    report = verify_replay(replay)
    if not report.ok:
        print(f"Replay FAILED after {report.actions} actions: {report.error}")
        return 1
    print(f"Replay OK: {report.actions} actions, final phase {report.phase}, stage {report.stage}")
    if args.show:
        print(format_view(GameEngine.from_replay(replay).get_view()))
    return 0


def cmd_rng(args) -> int:
    """Display the rng sequence for a seed."""
    numeric = seed_to_long(args.seed)
    raw = XorShift128(numeric)
    rng = Random(args.seed)
    values = [rng.next() for _ in range(args.count)]

    if args.json:
        print(json.dumps({
            "seed": args.seed,
            "numeric_seed": numeric,
            "xorshift_state": {"seed0": raw.seed0, "seed1": raw.seed1},
            "values": values,
        }, indent=2))
        return 0

    print(f"Seed: {args.seed} (numeric: {numeric})")
    print(f"XorShift128 state: seed0={raw.seed0} seed1={raw.seed1}")
    for i, value in enumerate(values):
        print(f"  {i}: {value:.6f}")
    print(f"Counter after {args.count} calls: {rng.counter}")
    return 0


def main():
    settings = load_settings()
    parser = argparse.ArgumentParser(
        description="GenieJack - rogue-like blackjack engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s play --seed ABC123
  %(prog)s auto --seed ABC123 --save runs/abc.json
  %(prog)s replay runs/abc.json --show
  %(prog)s rng --seed ABC123 --count 20
        """
    )
    parser.add_argument("--log-level", default=settings.log_level,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    play_parser = subparsers.add_parser("play", help="Play interactively")
    play_parser.add_argument("--seed", "-s", help="Run seed (random if omitted)")
    play_parser.add_argument("--no-llm", action="store_true", help="Wishes grant no blessing")
    play_parser.add_argument("--save", help="Write the replay to this file on exit")

    auto_parser = subparsers.add_parser("auto", help="Auto-play a run")
    auto_parser.add_argument("--seed", "-s", required=True, help="Run seed")
    auto_parser.add_argument("--max-actions", type=int, default=5000, help="Action limit")
    auto_parser.add_argument("--save", help="Write the replay to this file")
    auto_parser.add_argument("--json", "-j", action="store_true", help="Print the final view as JSON")

    replay_parser = subparsers.add_parser("replay", help="Verify a replay file")
    replay_parser.add_argument("file", help="Replay JSON file")
    replay_parser.add_argument("--show", action="store_true", help="Print the final state")

    rng_parser = subparsers.add_parser("rng", help="Show the rng sequence for a seed")
    rng_parser.add_argument("--seed", "-s", required=True, help="Seed")
    rng_parser.add_argument("--count", "-n", type=int, default=20, help="Number of values")
    rng_parser.add_argument("--json", "-j", action="store_true", help="Output in JSON format")

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(levelname)s - %(message)s',
    )

    if not args.command:
        parser.print_help()
        return 1

    commands = {
        "play": cmd_play,
        "auto": cmd_auto,
        "replay": cmd_replay,
        "rng": cmd_rng,
    }
    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
