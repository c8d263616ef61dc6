"""
transform 字符串检查命令模块
"""

from ...parser import parse_profile_file
from ...transforms import parse_transforms, stringify_transforms, get_transform_labels
from ..validators import validate_thread_index


class InspectCommand:
    """解码 transform 字符串并逐项显示"""

    def run(self, args) -> int:
        transforms = parse_transforms(args.transforms)
        print(f"=== Transform 检查 ===")
        print(f"输入: {args.transforms}")
        print(f"规范化: {stringify_transforms(transforms)}")
        print(f"共解析出 {len(transforms)} 个 transform")

        labels = None
        if args.thread:
            try:
                profile = parse_profile_file(args.thread)
                thread_index = validate_thread_index(args.thread_index, len(profile.threads))
                thread = profile.threads[thread_index]
                labels = get_transform_labels(thread, thread.name, transforms)
            except (ValueError, FileNotFoundError, IndexError) as e:
                print(f"错误: {e}")
                return 1
            print(labels[0])

        for i, transform in enumerate(transforms):
            print(f"  {i + 1}. {transform.type.value}: {transform}")
            if labels:
                print(f"     {labels[i + 1]}")
        return 0
