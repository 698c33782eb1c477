"""
Spoken phrasing for feedback items.

Each correction category maps to a handful of paraphrases, and each body
part to one longer guidance sentence used when a problem persists.
"""

from typing import Optional

from src.pose.state import FeedbackItem

DIALOGUES: dict[str, list[str]] = {
    # Hip
    "hip_more": [
        "Bend your hips a bit more",
        "Lower your hips down",
        "Deepen your hip bend",
        "Try bending at the hips a little more",
        "Your hips need to go lower",
    ],
    "hip_less": [
        "Straighten your hips a bit",
        "Raise your hips up",
        "Don't bend your hips as much",
        "Lift your hips slightly",
        "Your hips are too low, come up a bit",
    ],
    # Knee
    "knee_more": [
        "Bend your knees more",
        "Lower down by bending your knees",
        "Your knees need more bend",
        "Try bending your knees deeper",
        "Sink down into your knees",
    ],
    "knee_less": [
        "Straighten your knees a little",
        "Don't bend your knees as much",
        "Your knees are too bent, straighten up",
        "Raise up by straightening your knees",
        "Less bend in the knees",
    ],
    # Elbow
    "elbow_more": [
        "Bend your elbows more",
        "Your elbows need more bend",
        "Bring your hands closer by bending elbows",
        "Increase the bend in your elbows",
        "Elbows need to come in more",
    ],
    "elbow_less": [
        "Straighten your elbows out",
        "Your elbows are too bent",
        "Extend your arms more",
        "Less bend in the elbows",
        "Push your arms straighter",
    ],
    # Shoulder
    "shoulder_more": [
        "Adjust your shoulder angle",
        "Rotate your shoulders forward slightly",
        "Your shoulder position needs adjustment",
        "Modify your shoulder alignment",
        "Bring your shoulders forward a bit",
    ],
    "shoulder_less": [
        "Pull your shoulders back",
        "Your shoulders are too forward",
        "Open up your chest and shoulders",
        "Retract your shoulders slightly",
        "Roll your shoulders back",
    ],
    # Back
    "back": [
        "Keep your back straight",
        "Straighten your back",
        "Keep your torso upright",
        "Engage your core and straighten up",
        "Don't lean to the side",
    ],
    "back_upper": [
        "Straighten your upper back",
        "Keep your upper back straight",
        "Your neck and upper back need alignment",
        "Lift your chest and straighten your upper back",
        "Don't hunch your upper back",
    ],
    "back_mid": [
        "Engage your core for better mid-back position",
        "Straighten your mid-back",
        "Your middle back is rounding, engage your core",
        "Keep your torso upright",
        "Activate your core muscles",
    ],
    "back_lower": [
        "Maintain neutral lower back position",
        "Your lower back needs adjustment",
        "Keep a neutral spine in your lower back",
        "Don't arch your lower back too much",
        "Align your lower back",
    ],
    # Distance
    "distance_close": [
        "Step back from the camera",
        "You're too close, move back a bit",
        "Take a step back",
        "Move farther from the camera",
        "Back up a little please",
    ],
    "distance_far": [
        "Move closer to the camera",
        "You're too far, step forward",
        "Come closer to the camera",
        "Take a step forward",
        "Move in a bit closer",
    ],
    # Visibility
    "visibility": [
        "Position yourself in front of the camera",
        "Make sure you're fully visible",
        "Center yourself in the camera view",
        "I can't see you properly, adjust your position",
        "Get into the camera frame",
    ],
}

CORRECTION_GUIDANCE: dict[str, str] = {
    "hip": (
        "To correct your hip position: First, imagine sitting back into a chair. "
        "Keep your weight on your heels. Your knees should track over your toes."
    ),
    "knee": (
        "For proper knee alignment: Make sure your knees don't go past your toes. "
        "Keep them aligned with your feet. Distribute your weight evenly."
    ),
    "elbow": (
        "To fix your elbow position: Keep your elbows close to your body. "
        "Bend from the elbow joint, not the shoulder. Maintain control throughout the movement."
    ),
    "shoulder": (
        "For better shoulder alignment: Roll your shoulders back and down. Keep your chest up. "
        "Imagine squeezing a pencil between your shoulder blades."
    ),
    "back": (
        "To straighten your back: Engage your core muscles. Keep your chest lifted. "
        "Imagine a string pulling the top of your head toward the ceiling. Maintain a neutral spine."
    ),
    "distance": (
        "Adjust your distance from the camera so your full body is visible. "
        "You should be able to see from your head to below your knees."
    ),
    "visibility": (
        "Position yourself in the center of the camera frame. "
        "Make sure there's good lighting and your entire body is visible."
    ),
}

_JOINT_WORDS = ("hip", "knee", "elbow", "shoulder")


def identify_dialogue_type(item: FeedbackItem) -> Optional[str]:
    """Dialogue category for an item: its ``type`` if known, else parsed from text."""
    if item.type in DIALOGUES:
        return item.type

    text = item.text.lower()

    if "move back" in text or "too close" in text:
        return "distance_close"
    if "move closer" in text or "too far" in text:
        return "distance_far"
    if "position yourself" in text or "camera" in text:
        return "visibility"

    if "upper back" in text or "neck" in text:
        return "back_upper"
    if "mid-back" in text or "core" in text:
        return "back_mid"
    if "lower back" in text:
        return "back_lower"
    if "back" in text:
        return "back"

    for joint in _JOINT_WORDS:
        if joint in text:
            if "more" in text or "bend" in text or "lower" in text:
                return f"{joint}_more"
            if "less" in text or "straighten" in text or "raise" in text:
                return f"{joint}_less"

    return None


def guidance_for(item: FeedbackItem) -> Optional[str]:
    """Long-form correction guidance for the body part an item is about."""
    dialogue_type = identify_dialogue_type(item)
    if dialogue_type is None:
        return None
    return CORRECTION_GUIDANCE.get(dialogue_type.split("_")[0])
