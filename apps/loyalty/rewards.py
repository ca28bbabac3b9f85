"""
Reward rules shared by the scan page and both wallet passes.

One point is earned per purchase. Every multiple of 10 points unlocks a free
coffee and every multiple of 25 points a free meal; each threshold can be
redeemed once. Redeeming does not deduct points.
"""

POINTS_PER_PURCHASE = 1
POINTS_FOR_COFFEE = 10
POINTS_FOR_MEAL = 25
STAMPS_PER_CARD = 10

REWARD_COFFEE = 'coffee'
REWARD_MEAL = 'meal'

MESSAGE_BOTH = '🎉 You earned BOTH a FREE MEAL and FREE COFFEE! 🍽️☕️'
MESSAGE_MEAL = '🎉 You earned a FREE MEAL! 🍽️'
MESSAGE_COFFEE = '🎉 You earned a FREE COFFEE! ☕️'
MESSAGE_NONE = 'No reward yet! Keep shopping, you are almost there!'

LABEL_BOTH = 'You just earned rewards!'
LABEL_ONE = 'You just earned a reward!'
LABEL_NONE = 'KEEP GOING'


def _to_int_list(values):
    if not isinstance(values, (list, tuple)):
        return []
    result = []
    for value in values:
        try:
            result.append(int(value))
        except (TypeError, ValueError):
            continue
    return result


def normalize_redeemed(value):
    """
    Coerce a stored ``redeemed_rewards`` value into ``{'coffees': [...], 'meals': [...]}``.

    Missing keys, non-list values and unparsable entries are dropped.
    """
    if not isinstance(value, dict):
        value = {}
    return {
        'coffees': _to_int_list(value.get('coffees')),
        'meals': _to_int_list(value.get('meals')),
    }


def reward_size(reward_type):
    return POINTS_FOR_MEAL if reward_type == REWARD_MEAL else POINTS_FOR_COFFEE


def redeemed_key(reward_type):
    return 'meals' if reward_type == REWARD_MEAL else 'coffees'


def calculate_rewards(points, redeemed=None):
    """
    Reward status for a points balance.

    A reward is "earned" when the balance sits exactly on an unredeemed
    threshold. Meal takes priority over coffee for ``reward_type``; at
    balances such as 50 both are earned.
    """
    try:
        points = int(points or 0)
    except (TypeError, ValueError):
        points = 0
    redeemed = normalize_redeemed(redeemed)

    earned_meal = (
        points >= POINTS_FOR_MEAL
        and points % POINTS_FOR_MEAL == 0
        and points not in redeemed['meals']
    )
    earned_coffee = (
        points >= POINTS_FOR_COFFEE
        and points % POINTS_FOR_COFFEE == 0
        and points not in redeemed['coffees']
    )

    if earned_meal and earned_coffee:
        message, label = MESSAGE_BOTH, LABEL_BOTH
    elif earned_meal:
        message, label = MESSAGE_MEAL, LABEL_ONE
    elif earned_coffee:
        message, label = MESSAGE_COFFEE, LABEL_ONE
    else:
        message, label = MESSAGE_NONE, LABEL_NONE

    if earned_meal:
        reward_type = REWARD_MEAL
    elif earned_coffee:
        reward_type = REWARD_COFFEE
    else:
        reward_type = None

    return {
        'reward_earned': earned_meal or earned_coffee,
        'reward_type': reward_type,
        'earned_meal': earned_meal,
        'earned_coffee': earned_coffee,
        'reward_message': message,
        'reward_label': label,
    }


def reward_message(reward_type):
    return MESSAGE_MEAL if reward_type == REWARD_MEAL else MESSAGE_COFFEE


def available_rewards(points, redeemed=None):
    """Every unredeemed coffee and meal threshold up to ``points``, ascending."""
    redeemed = normalize_redeemed(redeemed)
    points = int(points or 0)
    return {
        'coffees': [
            threshold
            for threshold in range(POINTS_FOR_COFFEE, points + 1, POINTS_FOR_COFFEE)
            if threshold not in redeemed['coffees']
        ],
        'meals': [
            threshold
            for threshold in range(POINTS_FOR_MEAL, points + 1, POINTS_FOR_MEAL)
            if threshold not in redeemed['meals']
        ],
    }


def is_reward_available(points, reward_type, threshold):
    """True when ``threshold`` is a reachable multiple of the reward size."""
    size = reward_size(reward_type)
    return 0 < threshold <= points and threshold % size == 0


def stamp_progress(points):
    """
    Stamps shown on the card.

    A full card (10 stamps) is shown while the balance sits on a multiple of
    10, so the customer sees the completed card until the next purchase.
    """
    points = int(points or 0)
    if points > 0 and points % STAMPS_PER_CARD == 0:
        current = STAMPS_PER_CARD
    else:
        current = points % STAMPS_PER_CARD
    return {
        'current': current,
        'remaining': STAMPS_PER_CARD - current,
    }
