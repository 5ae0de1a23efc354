"""
Prompt templates
One template per question type and language, plus difficulty calibration
"""
from typing import Dict, Tuple

from core.contracts import CoverageKey, Language, QuestionType
from planning.catalog import SkillNode


DIFFICULTY_DESC = {
    1: "Very Easy - basic recall, simple definitions, single-step",
    2: "Easy - straightforward application of one concept",
    3: "Medium - multi-step problems, combining 2 concepts",
    4: "Hard - complex problems, multiple concepts, deeper understanding",
    5: "Very Hard - challenging, extension topics, advanced reasoning",
}

DIFFICULTY_DESC_ZH = {
    1: "非常容易（基本記憶、簡單定義、單一步驟）",
    2: "容易（直接應用單一概念）",
    3: "中等（多步驟、結合兩個概念）",
    4: "困難（複雜問題、多個概念、需要深入理解）",
    5: "非常困難（具挑戰性、延伸課題、進階推理）",
}

SYSTEM_PROMPT = {
    Language.EN: "You are a HKDSE Physics teacher. Respond only with valid JSON.",
    Language.ZH: "你是HKDSE物理教師。只回應合法的JSON。",
}


MC_PROMPT_EN = """Create a multiple choice question for "{topic}" at difficulty level: {difficulty_desc}.

Requirements:
- Follow DSE exam style and difficulty
- Use LaTeX for physics formulas ($...$)
- Exactly 4 clear, well-differentiated options
- Include a detailed explanation

Respond with JSON only:
{{
  "question": "Question text",
  "options": ["A. Option 1", "B. Option 2", "C. Option 3", "D. Option 4"],
  "correctAnswer": "A",
  "explanation": "Why the answer is correct",
  "topic": "{topic}",
  "difficulty": {difficulty}
}}
"""

MC_PROMPT_ZH = """為「{topic}」創建一道{difficulty_desc}的選擇題。

要求：
- 符合DSE考試風格和難度
- 物理公式使用LaTeX ($...$)
- 剛好4個清晰且有區分度的選項
- 包含詳細解釋

只回應JSON格式：
{{
  "question": "題目內容",
  "options": ["A. 選項一", "B. 選項二", "C. 選項三", "D. 選項四"],
  "correctAnswer": "A",
  "explanation": "詳細解釋為什麼答案正確",
  "topic": "{topic}",
  "difficulty": {difficulty}
}}
"""

SHORT_PROMPT_EN = """Create a short answer question (4-6 marks) for "{topic}" at difficulty: {difficulty_desc}.

Requirements:
- Follow DSE exam style
- Use LaTeX for formulas ($...$)
- Marking scheme marks must add up to totalMarks

Respond with JSON only:
{{
  "question": "Question text",
  "modelAnswer": "Model answer with steps",
  "markingScheme": [
    {{"marks": 1, "point": "First point"}},
    {{"marks": 2, "point": "Second point"}},
    {{"marks": 2, "point": "Correct calculation"}}
  ],
  "totalMarks": 5,
  "topic": "{topic}",
  "difficulty": {difficulty}
}}
"""

SHORT_PROMPT_ZH = """為「{topic}」創建一道{difficulty_desc}的簡答題(4-6分)。

要求：
- 符合DSE考試風格
- 物理公式使用LaTeX ($...$)
- 評分方案的分數總和必須等於 totalMarks

只回應JSON格式：
{{
  "question": "題目內容",
  "modelAnswer": "標準答案",
  "markingScheme": [
    {{"marks": 1, "point": "第一要點"}},
    {{"marks": 2, "point": "第二要點"}},
    {{"marks": 2, "point": "計算正確"}}
  ],
  "totalMarks": 5,
  "topic": "{topic}",
  "difficulty": {difficulty}
}}
"""

LONG_PROMPT_EN = """Create a long question (8-12 marks, 2-3 parts) for "{topic}" at difficulty: {difficulty_desc}.

Requirements:
- Follow DSE exam style
- Multiple parts with progressive difficulty
- Use LaTeX for formulas ($...$)
- Part marks must add up to totalMarks

Respond with JSON only:
{{
  "question": "Context and scenario",
  "parts": [
    {{"part": "a", "question": "Part a question", "marks": 3, "modelAnswer": "Answer"}},
    {{"part": "b", "question": "Part b question", "marks": 4, "modelAnswer": "Answer"}},
    {{"part": "c", "question": "Part c question", "marks": 4, "modelAnswer": "Answer"}}
  ],
  "totalMarks": 11,
  "topic": "{topic}",
  "difficulty": {difficulty}
}}
"""

LONG_PROMPT_ZH = """為「{topic}」創建一道{difficulty_desc}的長題目(8-12分，2-3部分)。

要求：
- 符合DSE考試風格
- 分為多個部分，難度遞進
- 物理公式使用LaTeX ($...$)
- 各部分分數總和必須等於 totalMarks

只回應JSON格式：
{{
  "question": "題目背景和情境",
  "parts": [
    {{"part": "a", "question": "第一部分問題", "marks": 3, "modelAnswer": "答案"}},
    {{"part": "b", "question": "第二部分問題", "marks": 4, "modelAnswer": "答案"}},
    {{"part": "c", "question": "第三部分問題", "marks": 4, "modelAnswer": "答案"}}
  ],
  "totalMarks": 11,
  "topic": "{topic}",
  "difficulty": {difficulty}
}}
"""

FILL_IN_PROMPT_EN = """Create a fill-in-the-blank question for "{topic}" at difficulty: {difficulty_desc}.

Requirements:
- Quick practice (10-30 seconds to complete)
- Test key concepts or formulas
- Use ___ for each blank, one answer in "blanks" per ___
- Use LaTeX for formulas ($...$)

Respond with JSON only:
{{
  "question": "Newton's second law can be expressed as F = ___",
  "blanks": ["ma"],
  "hints": ["Force equals mass times..."],
  "explanation": "Why this is the correct answer",
  "topic": "{topic}",
  "difficulty": {difficulty}
}}
"""

FILL_IN_PROMPT_ZH = """為「{topic}」創建一道{difficulty_desc}的填空題。

要求：
- 適合快速練習（10-30秒完成）
- 測試關鍵概念或公式
- 使用 ___ 表示空白處，每個 ___ 在 "blanks" 中對應一個答案
- 物理公式使用LaTeX ($...$)

只回應JSON格式：
{{
  "question": "牛頓第二定律可表示為 F = ___",
  "blanks": ["ma"],
  "hints": ["力等於質量乘以..."],
  "explanation": "解釋為什麼這是正確答案",
  "topic": "{topic}",
  "difficulty": {difficulty}
}}
"""

MATCHING_PROMPT_EN = """Create a matching question for "{topic}" at difficulty: {difficulty_desc}.

Requirements:
- 4-6 pairs to match
- Quick practice format
- Test concept relationships
- Use LaTeX for formulas ($...$)

Respond with JSON only:
{{
  "question": "Match the physical quantities with their units",
  "leftItems": ["Force", "Energy", "Power", "Momentum"],
  "rightItems": ["Newton (N)", "Joule (J)", "Watt (W)", "kg m/s"],
  "correctPairs": [[0, 0], [1, 1], [2, 2], [3, 3]],
  "explanation": "Explanation of the matching relationships",
  "topic": "{topic}",
  "difficulty": {difficulty}
}}
"""

MATCHING_PROMPT_ZH = """為「{topic}」創建一道{difficulty_desc}的配對題。

要求：
- 4-6對項目進行配對
- 適合快速練習
- 測試概念關聯
- 物理公式使用LaTeX ($...$)

只回應JSON格式：
{{
  "question": "將物理量與其單位配對",
  "leftItems": ["力", "能量", "功率", "動量"],
  "rightItems": ["牛頓 (N)", "焦耳 (J)", "瓦特 (W)", "千克·米/秒"],
  "correctPairs": [[0, 0], [1, 1], [2, 2], [3, 3]],
  "explanation": "解釋配對關係",
  "topic": "{topic}",
  "difficulty": {difficulty}
}}
"""

ORDERING_PROMPT_EN = """Create an ordering question for "{topic}" at difficulty: {difficulty_desc}.

Requirements:
- 4-6 items to order
- Can be step sequence, magnitude order, time order, etc.
- Quick practice format
- Use LaTeX for formulas ($...$)

Respond with JSON only:
{{
  "question": "Arrange the following waves by frequency from lowest to highest",
  "items": ["Radio waves", "Infrared", "Visible light", "Ultraviolet"],
  "correctOrder": [0, 1, 2, 3],
  "explanation": "In the EM spectrum, frequency increases from radio to gamma rays",
  "topic": "{topic}",
  "difficulty": {difficulty}
}}
"""

ORDERING_PROMPT_ZH = """為「{topic}」創建一道{difficulty_desc}的排序題。

要求：
- 4-6個項目需要排序
- 可以是步驟順序、大小順序、時間順序等
- 適合快速練習
- 物理公式使用LaTeX ($...$)

只回應JSON格式：
{{
  "question": "將以下波的頻率從低到高排列",
  "items": ["無線電波", "紅外線", "可見光", "紫外線"],
  "correctOrder": [0, 1, 2, 3],
  "explanation": "電磁波譜中，頻率從無線電波到伽馬射線遞增",
  "topic": "{topic}",
  "difficulty": {difficulty}
}}
"""


PROMPTS: Dict[Tuple[QuestionType, Language], str] = {
    (QuestionType.MC, Language.EN): MC_PROMPT_EN,
    (QuestionType.MC, Language.ZH): MC_PROMPT_ZH,
    (QuestionType.SHORT, Language.EN): SHORT_PROMPT_EN,
    (QuestionType.SHORT, Language.ZH): SHORT_PROMPT_ZH,
    (QuestionType.LONG, Language.EN): LONG_PROMPT_EN,
    (QuestionType.LONG, Language.ZH): LONG_PROMPT_ZH,
    (QuestionType.FILL_IN, Language.EN): FILL_IN_PROMPT_EN,
    (QuestionType.FILL_IN, Language.ZH): FILL_IN_PROMPT_ZH,
    (QuestionType.MATCHING, Language.EN): MATCHING_PROMPT_EN,
    (QuestionType.MATCHING, Language.ZH): MATCHING_PROMPT_ZH,
    (QuestionType.ORDERING, Language.EN): ORDERING_PROMPT_EN,
    (QuestionType.ORDERING, Language.ZH): ORDERING_PROMPT_ZH,
}


# 难度校准
CALIBRATION_SYSTEM_PROMPT = "You are a HKDSE Physics difficulty assessor. Respond only with valid JSON."

CALIBRATION_PROMPT = """Analyze the following physics question and determine its difficulty level on a scale of 1-5:

1 = Very Easy: Basic recall, simple definitions, single-step calculations
2 = Easy: Straightforward application of one concept
3 = Medium: Multi-step problems, combining 2 concepts
4 = Hard: Complex problems, multiple concepts, requires deeper understanding
5 = Very Hard: Challenging problems, extension topics, university-level thinking

Consider:
- Mathematical complexity
- Number of steps required
- Conceptual depth
- Whether it involves extension curriculum content
- Typical DSE question difficulty

Question: {question}

Respond with ONLY a JSON object:
{{
  "difficulty": <1-5>,
  "reasoning": "<brief 1-sentence explanation>"
}}
"""

CALIBRATION_MAX_QUESTION_CHARS = 2000


def render_prompt(key: CoverageKey, skill_node: SkillNode) -> Tuple[str, str]:
    """
    Build (system, user) prompts for one bucket

    Raises:
        ValueError: no template for the type/language pair or unknown difficulty
    """
    template = PROMPTS.get((key.question_type, key.language))
    if template is None:
        raise ValueError(f"No prompt template for {key.question_type.value}/{key.language.value}")

    descriptions = DIFFICULTY_DESC_ZH if key.language == Language.ZH else DIFFICULTY_DESC
    if key.difficulty not in descriptions:
        raise ValueError(f"No difficulty description for level {key.difficulty}")

    user_prompt = template.format(
        topic=skill_node.display_name(key.language),
        difficulty_desc=descriptions[key.difficulty],
        difficulty=key.difficulty,
    )
    return SYSTEM_PROMPT[key.language], user_prompt


def render_calibration_prompt(question_text: str) -> Tuple[str, str]:
    """Build (system, user) prompts for difficulty scoring"""
    question = str(question_text or "")[:CALIBRATION_MAX_QUESTION_CHARS]
    return CALIBRATION_SYSTEM_PROMPT, CALIBRATION_PROMPT.format(question=question)
