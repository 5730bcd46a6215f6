# 治疗类别归一化
"""
根据作用机制与适应症文本推导治疗类别。

规则按固定优先级匹配，首个命中即返回:
1. 免疫治疗: checkpoint inhibitor / pd-1 / pd-l1
2. 靶向治疗: kinase inhibitor / monoclonal antibody
3. 化疗: chemotherapy，或药物类别包含 antineoplastic
4. 其他
"""

from oncodata.models import TherapeuticCategory

IMMUNOTHERAPY_KEYWORDS = ("checkpoint inhibitor", "pd-1", "pd-l1")
TARGETED_KEYWORDS = ("kinase inhibitor", "monoclonal antibody")
CHEMOTHERAPY_KEYWORDS = ("chemotherapy",)
ANTINEOPLASTIC_CLASS = "antineoplastic"


def classify_category(
    mechanism_text: str,
    indication_text: str,
    drug_class: str = "",
) -> TherapeuticCategory:
    """推导治疗类别
    
    Args:
        mechanism_text: 作用机制文本
        indication_text: 适应症文本
        drug_class: 药物类别文本
        
    Returns:
        TherapeuticCategory: 治疗类别
    """
    text = f"{mechanism_text} {indication_text}".lower()
    
    if any(keyword in text for keyword in IMMUNOTHERAPY_KEYWORDS):
        return TherapeuticCategory.IMMUNOTHERAPY
    
    if any(keyword in text for keyword in TARGETED_KEYWORDS):
        return TherapeuticCategory.TARGETED
    
    if (
        any(keyword in text for keyword in CHEMOTHERAPY_KEYWORDS)
        or ANTINEOPLASTIC_CLASS in drug_class.lower()
    ):
        return TherapeuticCategory.CHEMOTHERAPY
    
    return TherapeuticCategory.OTHER
