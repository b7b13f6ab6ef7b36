from typing import List  # 导入类型提示


def _diversity(top_words: List[str]):  # 定义主题多样性函数
    """Topic diversity: the share of unique words among the top words of all
    topics, 1.0 when no word is shared between topics."""
    num_words = 0.  # 初始化词数
    word_set = set()  # 初始化词集合
    for words in top_words:  # 遍历每个主题词列表
        ws = words.split()  # 分词
        num_words += len(ws)  # 累加词数
        word_set.update(ws)  # 更新词集合

    if num_words == 0:  # 没有主题词
        raise ValueError("top_words should contain at least 1 word")  # 抛出数值错误
    TD = len(word_set) / num_words  # 计算主题多样性
    return TD  # 返回主题多样性值
