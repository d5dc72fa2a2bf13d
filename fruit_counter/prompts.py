"""Prompts for the CLOVA Studio vision model."""

SYSTEM_PROMPT = "You are a strict counter. Return ONLY JSON."

COUNT_PROMPT = """
이미지에서 과일별 개수와 가격만 JSON으로 반환하세요.

규칙:
- 최상위 키는 counts, prices 두 개만 사용합니다.
- counts: 한국어 과일 이름(예: 사과, 바나나) → 개수(정수).
- 과일이 바구니에 담겨 있으면 이름 뒤에 "_바구니"를 붙이고 바구니 개수를 셉니다. 한 바구니=1.
- 같은 과일을 바구니와 낱개로 중복해서 세지 마세요.
- prices: counts와 같은 키 → 가격(정수, 원 단위. ₩/원/쉼표 등 기호 제거).
- 불확실한 항목은 0 대신 키를 생략합니다.

응답 예시:
{"counts":{"사과_바구니":1,"바나나":2},"prices":{"사과_바구니":5000,"바나나":3900}}

⚠️ JSON 외의 텍스트, 마크다운, 주석 금지.
"""
