"""FastAPI backend for Tablut games against the engine."""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from time import time
from typing import Dict, List, Optional, Tuple

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel

from tablut.board import Board, Move, Side, mv
from tablut.config import Settings
from tablut.engine import Engine
from tablut.square import parse_square

logger = logging.getLogger(__name__)

settings = Settings.from_env()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Thread pool for CPU-intensive engine searches
    app.state.executor = ThreadPoolExecutor(max_workers=settings.ai_workers)
    yield
    app.state.executor.shutdown(wait=True)


app = FastAPI(title="Tablut AI Engine", lifespan=lifespan)


class GameState:
    """Game state container guarded by a per-game lock."""

    def __init__(self, board: Board, engine: Engine):
        self.board = board
        self.engine = engine
        self.lock = asyncio.Lock()
        self.last_access = time()
        self.is_processing = False  # engine search in progress


games: Dict[str, GameState] = {}
games_lock = asyncio.Lock()

# Games idle longer than this many seconds are dropped
MAX_IDLE_TIME = 3600


async def get_game_state(game_id: str) -> GameState:
    """Get game state with proper error handling."""
    async with games_lock:
        if game_id not in games:
            raise HTTPException(status_code=404, detail="Game not found")
        game_state = games[game_id]
        game_state.last_access = time()
        return game_state


async def cleanup_old_games(max_idle: float = MAX_IDLE_TIME):
    """Remove games that haven't been accessed for MAX_IDLE seconds."""
    current_time = time()

    async with games_lock:
        to_remove = [
            game_id
            for game_id, state in games.items()
            if current_time - state.last_access > max_idle
        ]
        for game_id in to_remove:
            del games[game_id]

    if to_remove:
        logger.info("Removed %d idle games", len(to_remove))


class NewGameRequest(BaseModel):
    """Request model for creating a new game."""

    game_id: str
    depth: Optional[int] = None  # engine depth (server default if None)
    setup: Optional[Dict[str, str]] = None  # e.g., {"e5": "K", "a4": "B"}
    position: Optional[str] = None  # an encoded board, alternative to setup
    turn: Side = Side.ATTACKER
    move_limit: Optional[int] = None


class MoveRequest(BaseModel):
    """Request model for making a move."""

    game_id: str
    from_square: Optional[str] = None  # e.g., "e3"
    to_square: Optional[str] = None  # e.g., "e6"
    move: Optional[str] = None  # notation, e.g., "e3-e6"; alternative to the squares


class BoardResponse(BaseModel):
    """Response model for board state."""

    board: List[List[str]]  # top row first
    encoded: str
    turn: str
    move_count: int
    game_over: bool
    winner: Optional[str]
    reason: Optional[str] = None  # "escape", "capture", "repetition", "move_limit", "stalemate"
    legal_moves: List[str]
    can_undo: bool = False


def game_status(board: Board) -> Tuple[bool, Optional[Side], Optional[str]]:
    """Return (game_over, winner, reason) for BOARD.

    A side to move with no legal move loses; the board itself does not
    apply that rule.
    """
    if board.winner is not None:
        if board.repeated:
            reason = "repetition"
        elif board.king_position is None:
            reason = "capture"
        elif board.king_position.is_edge():
            reason = "escape"
        else:
            reason = "move_limit"
        return True, board.winner, reason
    if not board.has_move(board.turn):
        return True, board.turn.opponent(), "stalemate"
    return False, None, None


def board_to_response(board: Board) -> BoardResponse:
    """Serialize BOARD for the client."""
    game_over, winner, reason = game_status(board)
    rows = [
        [board.board[row * Board.SIZE + col].symbol for col in range(Board.SIZE)]
        for row in range(Board.SIZE - 1, -1, -1)
    ]
    legal_moves = [] if game_over else [str(m) for m in board.legal_moves(board.turn)]
    return BoardResponse(
        board=rows,
        encoded=board.encoded_board(),
        turn=board.turn.value,
        move_count=board.move_count,
        game_over=game_over,
        winner=winner.value if winner else None,
        reason=reason,
        legal_moves=legal_moves,
        can_undo=board.move_count > 0,
    )


def parse_move(request: MoveRequest) -> Move:
    """Convert the requested move to a Move, raising ValueError if impossible."""
    if request.move is not None:
        return Move.from_notation(request.move)
    if request.from_square is None or request.to_square is None:
        raise ValueError("Either move or both from_square and to_square are required")
    move = mv(parse_square(request.from_square), parse_square(request.to_square))
    if move is None:
        raise ValueError(f"{request.from_square}-{request.to_square} is not a rook move")
    return move


@app.post("/api/new-game")
async def new_game(request: NewGameRequest):
    """Create a new game."""
    await cleanup_old_games()

    depth = request.depth if request.depth is not None else settings.search_depth
    move_limit = request.move_limit if request.move_limit is not None else settings.move_limit
    try:
        if request.position is not None:
            board = Board.from_encoding(request.position)
        else:
            board = Board(setup=request.setup, turn=request.turn)
        if move_limit is not None:
            board.set_move_limit(move_limit)
        engine = Engine(depth=depth)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    async with games_lock:
        games[request.game_id] = GameState(board, engine)

    logger.info("Created game %s (depth %d)", request.game_id, depth)
    return board_to_response(board)


@app.get("/api/board/{game_id}", response_model=BoardResponse)
async def get_board(game_id: str):
    """Get the current board state."""
    game_state = await get_game_state(game_id)
    async with game_state.lock:
        return board_to_response(game_state.board)


@app.post("/api/move")
async def make_move(request: MoveRequest):
    """Make a move for the side to move."""
    game_state = await get_game_state(request.game_id)

    try:
        move = parse_move(request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid move: {e}")

    async with game_state.lock:
        board = game_state.board
        if game_status(board)[0]:
            raise HTTPException(status_code=400, detail="Game is over")
        if not board.make_move(move):
            raise HTTPException(status_code=400, detail="Illegal move")
        response = board_to_response(board)

    logger.info("Game %s: %s", request.game_id, move)
    if response.game_over:
        logger.info("Game %s over: %s wins by %s", request.game_id, response.winner, response.reason)
    return {"status": "ok", "move": str(move), "state": response}


def _run_ai_search(engine: Engine, board: Board) -> Optional[Move]:
    """Run the CPU-bound engine search in a worker thread."""
    return engine.search(board)


@app.post("/api/ai-move/{game_id}")
async def ai_move(game_id: str, req: Request):
    """Let the engine move for the side to move."""
    game_state = await get_game_state(game_id)

    async with game_state.lock:
        if game_state.is_processing:
            raise HTTPException(
                status_code=409, detail="AI is already processing a move. Please wait."
            )
        if game_status(game_state.board)[0]:
            raise HTTPException(status_code=400, detail="Game is over")
        game_state.is_processing = True
        snapshot = game_state.board.copy()

    try:
        loop = asyncio.get_event_loop()
        best_move = await loop.run_in_executor(
            req.app.state.executor, _run_ai_search, game_state.engine, snapshot
        )

        if best_move is None:
            raise HTTPException(status_code=400, detail="No legal moves available")

        async with game_state.lock:
            if game_state.board.encoded_board() != snapshot.encoded_board():
                raise HTTPException(status_code=409, detail="Board changed during search")
            if not game_state.board.make_move(best_move):
                logger.error("Game %s: engine produced illegal move %s", game_id, best_move)
                raise HTTPException(status_code=500, detail="AI generated illegal move")
            response = board_to_response(game_state.board)
            nodes_searched = game_state.engine.nodes_searched
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Error generating AI move for game %s: %s", game_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail=f"Internal server error: {e}")
    finally:
        async with game_state.lock:
            game_state.is_processing = False

    logger.info("Game %s: engine played %s (%d nodes)", game_id, best_move, nodes_searched)
    return {
        "status": "ok",
        "move": best_move.to_notation(),
        "nodes_searched": nodes_searched,
        "state": response,
    }


@app.post("/api/undo/{game_id}")
async def undo_move(game_id: str):
    """Undo the last move."""
    game_state = await get_game_state(game_id)

    async with game_state.lock:
        if game_state.board.move_count == 0:
            raise HTTPException(status_code=400, detail="No moves to undo")
        game_state.board.undo()
        response = board_to_response(game_state.board)

    return {"status": "ok", "message": "Move undone successfully", "state": response}
